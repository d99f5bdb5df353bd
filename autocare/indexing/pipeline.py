"""
Indexing pipeline: load corpus, embed, and rebuild the vector store.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from tqdm import tqdm

from autocare.config import settings
from autocare.indexing.corpus import load_documents_from_dir
from autocare.vector_store.base import VectorStore

logger = logging.getLogger(__name__)


class NoDocumentsFound(RuntimeError):
    """The corpus directory is missing or holds no valid documents."""


async def reindex_corpus(
    vector_store: VectorStore,
    docs_dir: str | Path | None = None,
    show_progress: bool = False,
) -> int:
    started = time.time()
    docs_dir = docs_dir or settings.docs_dir
    documents = load_documents_from_dir(docs_dir)
    if not documents:
        raise NoDocumentsFound(f"No documents found to index in {docs_dir}")

    logger.info("Reindex started", extra={"documents": len(documents), "docs_dir": str(docs_dir)})
    await vector_store.rebuild(
        tqdm(documents, desc="Indexing", unit="docs", disable=not show_progress),
    )

    elapsed = time.time() - started
    logger.info(
        "Reindex completed",
        extra={"documents_indexed": len(documents), "elapsed_sec": round(elapsed, 2)},
    )
    return len(documents)


@dataclass
class ReindexSummary:
    indexed_documents: int
    index_size: int
    elapsed_sec: float


class ReindexService:
    """Reload the corpus from disk and swap it into the store."""

    def __init__(
        self,
        vector_store: VectorStore,
        docs_dir: str | Path | None = None,
        show_progress: bool = False,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.docs_dir = docs_dir or settings.docs_dir
        self.show_progress = show_progress
        self.logger = logger_ or logging.getLogger(__name__)

    async def run(self) -> ReindexSummary:
        started = time.time()
        indexed = await reindex_corpus(self.vector_store, self.docs_dir, show_progress=self.show_progress)
        elapsed = time.time() - started
        summary = ReindexSummary(
            indexed_documents=indexed,
            index_size=self.vector_store.size(),
            elapsed_sec=elapsed,
        )
        self.logger.info(
            "ReindexService completed",
            extra={"indexed_documents": indexed, "index_size": summary.index_size, "elapsed_sec": round(elapsed, 2)},
        )
        return summary


__all__ = ["NoDocumentsFound", "ReindexService", "ReindexSummary", "reindex_corpus"]
