import asyncio
import logging
import math
from types import SimpleNamespace

import pytest

from autocare.config import Settings
from autocare.embeddings.client import (
    EmbeddingBackendError,
    EmbeddingsClient,
    HttpEmbeddingProvider,
    LocalHashEmbeddingProvider,
    OpenAIEmbeddingProvider,
    build_embedding_provider,
    deterministic_embedding,
)

from tests.conftest import FailingProvider, FixedProvider


def test_deterministic_embedding_is_repeatable():
    first = deterministic_embedding("Oil change every 5000 miles")
    second = deterministic_embedding("Oil change every 5000 miles")
    assert first == second
    assert len(first) == 384


def test_deterministic_embedding_is_unit_length():
    vector = deterministic_embedding("brake pads")
    assert math.isclose(math.sqrt(sum(v * v for v in vector)), 1.0, rel_tol=1e-9)


def test_deterministic_embedding_ignores_case_and_surrounding_space():
    assert deterministic_embedding("  Check Engine  ") == deterministic_embedding("check engine")


def test_deterministic_embedding_of_empty_text_is_zero_vector():
    vector = deterministic_embedding("   ")
    assert vector == [0.0] * 384


def test_deterministic_embedding_weights_by_position():
    """'ab' puts weight 1 on 'a' and 1/2 on 'b' before normalization."""
    vector = deterministic_embedding("ab", dimensions=384)
    assert math.isclose(vector[ord("a")] / vector[ord("b")], 2.0)


def test_deterministic_embedding_wraps_high_code_points():
    vector = deterministic_embedding("é", dimensions=16)
    assert vector[ord("é") % 16] == pytest.approx(1.0)


def test_client_defaults_to_local_provider():
    client = EmbeddingsClient(dimensions=32)
    result = asyncio.run(client.embed_text("tire rotation"))
    assert result.provider == "local"
    assert result.fallback is False
    assert result.vector == deterministic_embedding("tire rotation", 32)
    assert client.is_available() is False


def test_client_falls_back_when_backend_fails(caplog):
    provider = FailingProvider()
    client = EmbeddingsClient(provider=provider)

    with caplog.at_level(logging.WARNING, logger="autocare.embeddings.client"):
        result = asyncio.run(client.embed_text("battery light"))

    assert provider.calls == 1
    assert result.fallback is True
    assert result.provider == "local"
    assert result.vector == deterministic_embedding("battery light")
    assert "using local fallback" in caplog.text


def test_client_falls_back_on_timeout():
    class SlowProvider:
        name = "slow"

        async def embed(self, text):
            await asyncio.sleep(5)
            return [1.0]

    client = EmbeddingsClient(provider=SlowProvider(), timeout_sec=0.01)
    result = asyncio.run(client.embed_text("oil"))
    assert result.fallback is True
    assert result.vector == deterministic_embedding("oil")


def test_client_uses_remote_vector_when_backend_answers():
    client = EmbeddingsClient(provider=FixedProvider([0.1, 0.2, 0.3]), dimensions=3)
    result = asyncio.run(client.embed_text("anything"))
    assert result.vector == [0.1, 0.2, 0.3]
    assert result.provider == "fixed"
    assert client.is_available() is True


def test_client_falls_back_when_backend_width_differs(caplog):
    client = EmbeddingsClient(provider=FixedProvider([0.5] * 1536), dimensions=384)

    with caplog.at_level(logging.WARNING, logger="autocare.embeddings.client"):
        result = asyncio.run(client.embed_text("brake pads"))

    assert result.fallback is True
    assert len(result.vector) == 384
    assert "1536 dimensions" in caplog.records[-1].reason


def test_openai_provider_requests_configured_width():
    class FakeEmbeddings:
        kwargs = None

        async def create(self, **kwargs):
            FakeEmbeddings.kwargs = kwargs
            return SimpleNamespace(data=[SimpleNamespace(embedding=[0.25] * 16)])

    provider = OpenAIEmbeddingProvider(
        model="text-embedding-3-small",
        client=SimpleNamespace(embeddings=FakeEmbeddings()),
        dimensions=16,
    )
    vector = asyncio.run(provider.embed(""))

    assert len(vector) == 16
    assert FakeEmbeddings.kwargs == {"model": "text-embedding-3-small", "input": " ", "dimensions": 16}


def test_deterministic_embedding_reads_utf16_code_units():
    # U+1F697 is the surrogate pair D83D DE97.
    vector = deterministic_embedding("\U0001F697", dimensions=384)
    assert math.isclose(vector[0xD83D % 384] / vector[0xDE97 % 384], 2.0)
    assert sum(1 for v in vector if v) == 2


def test_embed_texts_keeps_order():
    client = EmbeddingsClient(dimensions=8)
    vectors = asyncio.run(client.embed_texts(["a", "b"]))
    assert vectors == [deterministic_embedding("a", 8), deterministic_embedding("b", 8)]


def test_http_provider_rejects_payload_without_vector():
    import httpx

    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    async def call():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            provider = HttpEmbeddingProvider("http://embed.local/v1", client=http)
            await provider.embed("hello")

    with pytest.raises(EmbeddingBackendError):
        asyncio.run(call())


def test_http_provider_reads_values_and_sends_bearer_key():
    import httpx

    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"values": [1, 2, 3]})

    async def call():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            provider = HttpEmbeddingProvider("http://embed.local/v1", api_key="k", client=http)
            return await provider.embed("hello")

    assert asyncio.run(call()) == [1.0, 2.0, 3.0]
    assert seen["auth"] == "Bearer k"


def test_factory_selects_provider_from_settings():
    local = build_embedding_provider(Settings(EMBEDDING_PROVIDER="local"))
    assert isinstance(local, LocalHashEmbeddingProvider)

    openai = build_embedding_provider(
        Settings(EMBEDDING_PROVIDER="openai", OPENAI_API_KEY="sk-test", EMBEDDING_DIMENSIONS=512)
    )
    assert isinstance(openai, OpenAIEmbeddingProvider)
    assert openai.dimensions == 512

    custom = build_embedding_provider(Settings(EMBEDDING_PROVIDER="custom", CUSTOM_EMBED_URL="http://x/embed"))
    assert isinstance(custom, HttpEmbeddingProvider)


def test_factory_degrades_to_local_without_credentials():
    provider = build_embedding_provider(Settings(EMBEDDING_PROVIDER="custom", CUSTOM_EMBED_URL=None))
    assert isinstance(provider, LocalHashEmbeddingProvider)

    client = EmbeddingsClient.from_settings(Settings(EMBEDDING_PROVIDER="openai", OPENAI_API_KEY=None))
    assert client.is_available() is False
