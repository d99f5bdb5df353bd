"""
CLI to search the persisted vector index with a text query.

Example:
    python -m scripts.search_query --query "squeaking brakes" --top-k 3
"""

from __future__ import annotations

import argparse
import asyncio

from autocare.config import settings
from autocare.vector_store import get_vector_store


async def search(query: str, top_k: int, threshold: float):
    return await get_vector_store().search(query, top_k=top_k, threshold=threshold)


def main() -> None:
    parser = argparse.ArgumentParser(description="Search indexed documents by text query.")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--top-k", type=int, default=settings.search_top_k, help="How many results to return")
    parser.add_argument("--threshold", type=float, default=settings.search_threshold, help="Minimum similarity")
    parser.add_argument("--snippet", type=int, default=300, help="Snippet length")
    args = parser.parse_args()

    results = asyncio.run(search(args.query, args.top_k, args.threshold))
    if not results:
        print("No results")
        return

    for idx, hit in enumerate(results, start=1):
        snippet = hit.content[: args.snippet].replace("\n", " ")
        print(f"\n#{idx} score={hit.score:.4f} id={hit.id}")
        print("metadata:", hit.metadata)
        print("text:", snippet + ("..." if len(hit.content) > args.snippet else ""))


if __name__ == "__main__":
    main()
