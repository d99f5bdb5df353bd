"""
Utility script to inspect the persisted index without dumping embeddings.

Usage:
    python -m scripts.inspect_index --limit 5 --offset 0
"""

from __future__ import annotations

import argparse
import json

from autocare.vector_store import get_vector_store

METADATA_ORDER = ["title", "category", "tags", "source"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored documents.")
    parser.add_argument("--limit", type=int, default=5, help="Number of documents to show")
    parser.add_argument("--offset", type=int, default=0, help="Offset for pagination")
    args = parser.parse_args()

    stats = get_vector_store().get_stats()
    documents = stats["documents"][args.offset : args.offset + args.limit]

    print(f"Index: {stats['index_name']} ({stats['persist_path'] or 'not persisted'})")
    print(f"Total documents: {stats['document_count']}, embedding dims: {stats['dimensions'] or '-'}")
    print(f"Showing {len(documents)} documents (offset={args.offset}, limit={args.limit})")
    for idx, doc in enumerate(documents, start=args.offset + 1):
        meta = doc["metadata"] or {}
        ordered_meta = {k: meta[k] for k in METADATA_ORDER if k in meta} | {
            k: v for k, v in meta.items() if k not in METADATA_ORDER
        }
        print(f"\n#{idx}: {doc['id']} ({doc['content_length']} chars, {doc['embedding_dims']} dims)")
        print("Metadata:", json.dumps(ordered_meta, ensure_ascii=False))


if __name__ == "__main__":
    main()
