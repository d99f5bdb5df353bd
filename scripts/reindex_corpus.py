"""
CLI for a full rebuild of the vector index from the docs directory.

Example:
    python -m scripts.reindex_corpus --seed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from autocare.config import settings, setup_logging
from autocare.indexing.corpus import seed_sample_corpus
from autocare.indexing.pipeline import ReindexService
from autocare.vector_store import get_vector_store

SAMPLE_QUERIES = (
    "How often should I change my oil?",
    "My brakes are squeaking",
    "Battery warning light is on",
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild the vector index from JSON documents.")
    parser.add_argument("--docs-dir", default=settings.docs_dir, help="Directory with *.json documents.")
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Write the built-in automotive knowledge base if the docs directory does not exist.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    return parser.parse_args()


async def run(args: argparse.Namespace, logger: logging.Logger) -> None:
    if args.seed and seed_sample_corpus(args.docs_dir):
        print(f"Created sample knowledge base in {args.docs_dir}")

    store = get_vector_store()
    service = ReindexService(store, args.docs_dir, show_progress=not args.no_progress, logger_=logger)
    summary = await service.run()
    print(f"Indexed documents: {summary.indexed_documents} (index size {summary.index_size}, "
          f"elapsed {summary.elapsed_sec:.2f}s)")

    for query in SAMPLE_QUERIES:
        hits = await store.search(query, top_k=2, threshold=settings.search_threshold)
        print(f'\nQuery: "{query}"')
        if hits:
            print(f"   Top result: {hits[0].id} (score: {hits[0].score:.3f})")
        else:
            print("   No results found")


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()

    try:
        asyncio.run(run(args, logger))
    except Exception:
        logger.exception("Reindex failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
