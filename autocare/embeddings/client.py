"""
Embedding providers and the fallback-aware embeddings client.

The provider is picked once from settings. Whatever it is, ``EmbeddingsClient``
never raises: a failing or slow backend is replaced by the deterministic local
embedding and a warning is logged.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import List, Protocol, Sequence

import httpx
from openai import AsyncOpenAI

from autocare.config import Settings, settings

DEFAULT_EMBEDDING_DIMENSIONS = settings.embedding_dimensions
DEFAULT_EMBEDDING_TIMEOUT_SEC = settings.embedding_timeout_sec

logger = logging.getLogger(__name__)


class EmbeddingBackendError(RuntimeError):
    """A remote embedding backend returned something unusable."""


def deterministic_embedding(text: str, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS) -> List[float]:
    """
    Reproducible character-weighted embedding used offline and as the fallback.

    The trimmed, lower-cased text is read as UTF-16 code units (characters
    outside the BMP count as two surrogate units), so vectors match snapshots
    written by the JavaScript service. Unit ``u`` at ``position`` adds
    ``1 / (position + 1)`` to dimension ``u % dimensions``; the result is scaled
    to unit length. Empty input gives the all-zero vector.
    """
    raw = text.strip().lower().encode("utf-16-le")
    vector = [0.0] * dimensions
    for position in range(len(raw) // 2):
        unit = int.from_bytes(raw[2 * position : 2 * position + 2], "little")
        vector[unit % dimensions] += 1.0 / (position + 1)

    magnitude = math.sqrt(sum(value * value for value in vector))
    if magnitude > 0:
        vector = [value / magnitude for value in vector]
    return vector


class EmbeddingProvider(Protocol):
    name: str

    async def embed(self, text: str) -> List[float]:
        ...


class LocalHashEmbeddingProvider:
    name = "local"

    def __init__(self, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS) -> None:
        self.dimensions = dimensions

    async def embed(self, text: str) -> List[float]:
        return deterministic_embedding(text, self.dimensions)


class OpenAIEmbeddingProvider:
    name = "openai"

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def embed(self, text: str) -> List[float]:
        # The API rejects empty input. text-embedding-3 models shorten to ``dimensions``.
        response = await self.client.embeddings.create(
            model=self.model,
            input=text or " ",
            dimensions=self.dimensions,
        )
        if not response.data:
            raise EmbeddingBackendError("OpenAI returned no embedding data")
        return list(response.data[0].embedding)


class HttpEmbeddingProvider:
    """Generic JSON endpoint: POST {"text": ...} -> {"embedding": [...]} or {"values": [...]}."""

    name = "custom"

    def __init__(self, url: str, api_key: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.api_key = api_key
        self.client = client

    async def embed(self, text: str) -> List[float]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        if self.client is not None:
            response = await self.client.post(self.url, json={"text": text}, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.url, json={"text": text}, headers=headers)
        response.raise_for_status()

        payload = response.json()
        vector = (payload.get("embedding") or payload.get("values")) if isinstance(payload, dict) else None
        if not isinstance(vector, list) or not vector:
            raise EmbeddingBackendError(f"Embedding endpoint {self.url} returned no vector")
        return [float(value) for value in vector]


@dataclass(frozen=True)
class EmbeddingResult:
    vector: List[float]
    provider: str
    fallback: bool = False


class EmbeddingsClient:
    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        timeout_sec: float = DEFAULT_EMBEDDING_TIMEOUT_SEC,
    ) -> None:
        self.provider: EmbeddingProvider = provider or LocalHashEmbeddingProvider(dimensions)
        if isinstance(self.provider, LocalHashEmbeddingProvider):
            self.local = self.provider
        else:
            self.local = LocalHashEmbeddingProvider(dimensions)
        self.dimensions = self.local.dimensions
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings_: Settings | None = None) -> "EmbeddingsClient":
        return cls(
            provider=build_embedding_provider(settings_),
            dimensions=(settings_ or settings).embedding_dimensions,
            timeout_sec=(settings_ or settings).embedding_timeout_sec,
        )

    def is_available(self) -> bool:
        """True when a remote backend (not the local hash) is configured."""
        return self.provider is not self.local

    async def embed_text(self, text: str) -> EmbeddingResult:
        if self.provider is self.local:
            return EmbeddingResult(vector=await self.local.embed(text), provider=self.local.name)

        try:
            vector = await asyncio.wait_for(self.provider.embed(text), timeout=self.timeout_sec)
            # Stored vectors and fallback vectors must share one width.
            if len(vector) != self.dimensions:
                raise EmbeddingBackendError(
                    f"{self.provider.name} returned {len(vector)} dimensions, expected {self.dimensions}"
                )
            return EmbeddingResult(vector=vector, provider=self.provider.name)
        except asyncio.TimeoutError:
            reason = f"timed out after {self.timeout_sec}s"
        except Exception as exc:
            reason = str(exc) or exc.__class__.__name__

        logger.warning(
            "Embedding backend failed, using local fallback",
            extra={"provider": self.provider.name, "reason": reason},
        )
        return EmbeddingResult(vector=await self.local.embed(text), provider=self.local.name, fallback=True)

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for text in texts:
            vectors.append((await self.embed_text(text)).vector)
        return vectors


def build_embedding_provider(settings_: Settings | None = None) -> EmbeddingProvider:
    """
    Factory for the configured provider. A remote provider without its
    credentials/URL degrades to the local one.
    """
    cfg = settings_ or settings
    backend = cfg.embedding_provider.lower()

    if backend == "openai":
        if cfg.openai_api_key:
            return OpenAIEmbeddingProvider(
                model=cfg.embedding_model_name,
                api_key=cfg.openai_api_key.get_secret_value(),
                dimensions=cfg.embedding_dimensions,
            )
        logger.warning("EMBEDDING_PROVIDER=openai but OPENAI_API_KEY is not set; using local embeddings")
    elif backend == "custom":
        if cfg.custom_embed_url:
            key = cfg.custom_embed_key.get_secret_value() if cfg.custom_embed_key else None
            return HttpEmbeddingProvider(url=cfg.custom_embed_url, api_key=key)
        logger.warning("EMBEDDING_PROVIDER=custom but CUSTOM_EMBED_URL is not set; using local embeddings")
    elif backend != "local":
        raise ValueError(f"Unsupported embedding provider: {backend}")

    return LocalHashEmbeddingProvider(cfg.embedding_dimensions)


__all__ = [
    "EmbeddingBackendError",
    "EmbeddingProvider",
    "EmbeddingResult",
    "EmbeddingsClient",
    "HttpEmbeddingProvider",
    "LocalHashEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "build_embedding_provider",
    "deterministic_embedding",
    "DEFAULT_EMBEDDING_DIMENSIONS",
]
