from __future__ import annotations

from typing import List

import pytest

from autocare.config import Settings
from autocare.embeddings.client import EmbeddingsClient
from autocare.vector_store import InMemoryVectorStore


class ManualClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingProvider:
    name = "broken"

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or ConnectionError("backend unreachable")
        self.calls = 0

    async def embed(self, text: str) -> List[float]:
        self.calls += 1
        raise self.exc


class FixedProvider:
    """Returns a preset vector regardless of input."""

    name = "fixed"

    def __init__(self, vector: List[float]) -> None:
        self.vector = vector

    async def embed(self, text: str) -> List[float]:
        return list(self.vector)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def embeddings_client() -> EmbeddingsClient:
    return EmbeddingsClient()


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "data" / "vector-store.json"


@pytest.fixture
def store(embeddings_client) -> InMemoryVectorStore:
    return InMemoryVectorStore(embeddings_client, index_name="test")


@pytest.fixture
def persistent_store(embeddings_client, snapshot_path) -> InMemoryVectorStore:
    return InMemoryVectorStore(embeddings_client, index_name="test", persist_path=snapshot_path)


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        EMBEDDING_PROVIDER="local",
        OPENAI_API_KEY=None,
        ADMIN_TOKEN=None,
        VECTOR_STORE_PATH=str(tmp_path / "data" / "vector-store.json"),
        DOCS_DIR=str(tmp_path / "docs"),
        SESSION_MAX_REQUESTS_PER_MINUTE=3,
    )
