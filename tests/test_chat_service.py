import asyncio

from autocare.embeddings.client import EmbeddingsClient
from autocare.models.schemas import ChatRequest
from autocare.rag.pipeline import DEFAULT_REPLY, FALLBACK_MODEL, ChatService
from autocare.sessions.cache import SessionCache
from autocare.vector_store import InMemoryVectorStore


class StubLLM:
    model = "stub-model"

    def __init__(self, answer="Every 5,000 miles.", exc=None):
        self.answer = answer
        self.exc = exc
        self.messages = None

    async def chat(self, messages):
        self.messages = messages
        if self.exc:
            raise self.exc
        return self.answer


def _service(store, llm=None, clock=None, **cache_kwargs):
    cache = SessionCache(clock=clock, **cache_kwargs) if clock else SessionCache(**cache_kwargs)
    return ChatService(store, cache, llm_client=llm, top_k=3, threshold=0.3), cache


def _seeded_store():
    store = InMemoryVectorStore(EmbeddingsClient())
    asyncio.run(
        store.add_document(
            "oil-change-1",
            "Oil change service is recommended every 5,000-7,500 miles.",
            {"title": "Oil Change Service"},
        )
    )
    return store


def test_empty_index_gives_generic_reply(store):
    service, cache = _service(store)
    response = asyncio.run(service.reply(ChatRequest(message="How often should I change oil?")))

    assert response.reply == DEFAULT_REPLY
    assert response.model == FALLBACK_MODEL
    assert response.sources == []
    assert response.similarity is None
    assert cache.get(response.session_id) is not None


def test_reply_from_best_passage_without_llm():
    service, _ = _service(_seeded_store())
    response = asyncio.run(service.reply(ChatRequest(message="oil change service", session_id="s1")))

    assert response.session_id == "s1"
    assert response.sources == ["oil-change-1"]
    assert response.reply.startswith("Oil Change Service: ")
    assert response.similarity > 0.3
    assert [t.role for t in response.history] == ["user", "assistant"]


def test_llm_receives_context_and_history():
    llm = StubLLM()
    service, _ = _service(_seeded_store(), llm=llm)

    asyncio.run(service.reply(ChatRequest(message="oil change service", session_id="s1")))
    response = asyncio.run(service.reply(ChatRequest(message="oil change   service  cost?", session_id="s1")))

    assert response.reply == "Every 5,000 miles."
    assert response.model == "stub-model"
    assert "Oil Change Service" in llm.messages[1]["content"]
    assert llm.messages[-1] == {"role": "user", "content": "oil change service cost?"}
    assert [m["role"] for m in llm.messages[2:-1]] == ["user", "assistant"]


def test_llm_failure_falls_back_to_passage():
    service, _ = _service(_seeded_store(), llm=StubLLM(exc=RuntimeError("quota")))
    response = asyncio.run(service.reply(ChatRequest(message="oil change service")))

    assert response.model == FALLBACK_MODEL
    assert response.reply.startswith("Oil Change Service: ")


def test_history_is_capped_by_session_window():
    service, cache = _service(_seeded_store(), max_messages_per_session=4)
    for i in range(5):
        response = asyncio.run(service.reply(ChatRequest(message=f"question {i}", session_id="s1")))

    assert len(response.history) == 4
    assert response.history[-2].content == "question 4"
    assert len(cache.get("s1").messages) == 4


def test_dimension_mismatch_is_treated_as_no_context():
    store = _seeded_store()
    store.embeddings_client = EmbeddingsClient(dimensions=12)
    service, _ = _service(store)

    response = asyncio.run(service.reply(ChatRequest(message="oil change")))
    assert response.reply == DEFAULT_REPLY
