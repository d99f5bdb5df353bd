"""
Vector store abstractions and factories.
"""

from autocare.config import Settings, settings
from autocare.embeddings.client import EmbeddingsClient
from autocare.vector_store.base import DocumentLike, SearchHit, VectorRecord, VectorStore
from autocare.vector_store.memory_store import InMemoryVectorStore, PersistenceError
from autocare.vector_store.similarity import DimensionMismatch, cosine_similarity


def get_vector_store(
    embeddings_client: EmbeddingsClient | None = None,
    settings_: Settings | None = None,
) -> InMemoryVectorStore:
    """
    Build a store for the given settings. Each call returns a new instance;
    callers own it and pass it to whatever handles requests.
    """
    cfg = settings_ or settings
    return InMemoryVectorStore(
        embeddings_client=embeddings_client or EmbeddingsClient.from_settings(cfg),
        index_name=cfg.index_name,
        persist_path=cfg.vector_store_path or None,
    )


__all__ = [
    "DimensionMismatch",
    "DocumentLike",
    "InMemoryVectorStore",
    "PersistenceError",
    "SearchHit",
    "VectorRecord",
    "VectorStore",
    "cosine_similarity",
    "get_vector_store",
]
