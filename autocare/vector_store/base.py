"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol


@dataclass
class VectorRecord:
    id: str
    content: str
    embedding: List[float]
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class SearchHit:
    id: str
    score: float
    content: str
    metadata: Optional[Dict[str, Any]] = field(default=None)


class DocumentLike(Protocol):
    """What the corpus manager hands over: only ``id`` and ``content`` are embedded."""

    id: str
    content: str
    metadata: Optional[Dict[str, Any]]


class VectorStore(Protocol):
    async def add_document(self, id: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        ...

    async def add_documents(self, documents: Iterable[DocumentLike]) -> None:
        ...

    async def update_document(self, id: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        ...

    async def rebuild(self, documents: Iterable[DocumentLike]) -> None:
        ...

    async def search(self, query: str, top_k: int = 5, threshold: float = 0.55) -> List[SearchHit]:
        ...

    def get_document(self, id: str) -> Optional[VectorRecord]:
        ...

    def delete_document(self, id: str) -> bool:
        ...

    def clear(self) -> None:
        ...

    def size(self) -> int:
        ...

    def get_document_ids(self) -> List[str]:
        ...

    def get_stats(self) -> Dict[str, Any]:
        ...

    def save(self) -> bool:
        ...

    def load(self) -> bool:
        ...


__all__ = ["DocumentLike", "SearchHit", "VectorRecord", "VectorStore"]
