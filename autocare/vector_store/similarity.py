"""
Cosine similarity between embeddings.
"""

from __future__ import annotations

import math
from typing import Sequence


class DimensionMismatch(ValueError):
    """Two embeddings of different length were compared."""

    def __init__(self, left: int, right: int, record_id: str | None = None) -> None:
        self.left = left
        self.right = right
        self.record_id = record_id
        where = f" (record {record_id!r})" if record_id is not None else ""
        super().__init__(f"Embedding dimensions differ: {left} != {right}{where}")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


__all__ = ["DimensionMismatch", "cosine_similarity"]
