"""
Retrieval-augmented chat: session window, context retrieval, grounded reply.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from autocare.config import settings
from autocare.llm.client import LLMClient
from autocare.models.schemas import ChatRequest, ChatResponse, ChatTurn
from autocare.sessions.cache import ChatMessage, SessionCache, SessionData
from autocare.vector_store.base import SearchHit, VectorStore
from autocare.vector_store.similarity import DimensionMismatch

logger = logging.getLogger(__name__)

DEFAULT_REPLY = (
    "I'm not sure about that one. I can help with service pricing, maintenance schedules, "
    "diagnostics, warranty questions and booking an appointment."
)
FALLBACK_MODEL = "retrieval"

SYSTEM_PROMPT = (
    "You are the virtual service advisor of an automotive repair shop. "
    "Answer using only the reference passages provided. If they do not cover the question, "
    "say so briefly and suggest booking a diagnostic appointment. Keep answers under 120 words."
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatService:
    def __init__(
        self,
        vector_store: VectorStore,
        session_cache: SessionCache,
        llm_client: LLMClient | None = None,
        top_k: int = settings.search_top_k,
        threshold: float = settings.search_threshold,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.session_cache = session_cache
        self.llm_client = llm_client
        self.top_k = top_k
        self.threshold = threshold
        self.logger = logger_ or logging.getLogger(__name__)

    # --- Public API ---
    async def reply(self, request: ChatRequest) -> ChatResponse:
        session_id = request.session_id or uuid.uuid4().hex
        message = self.normalize_message(request.message)
        session = self.session_cache.get(session_id) or SessionData(created_at=_now_iso())

        hits = await self.retrieve_context(
            message,
            top_k=request.top_k or self.top_k,
            threshold=request.threshold if request.threshold is not None else self.threshold,
        )
        reply, model = await self._compose_reply(message, hits, session.messages)

        session.messages.append(ChatMessage(role="user", content=message, timestamp=_now_iso()))
        session.messages.append(ChatMessage(role="assistant", content=reply, timestamp=_now_iso()))
        self.session_cache.set(session_id, session)
        window = session.messages[-self.session_cache.max_messages_per_session:]

        return ChatResponse(
            session_id=session_id,
            reply=reply,
            sources=[hit.id for hit in hits],
            similarity=round(hits[0].score, 4) if hits else None,
            model=model,
            history=[ChatTurn(role=m.role, content=m.content, timestamp=m.timestamp) for m in window],
        )

    # --- Steps ---
    @staticmethod
    def normalize_message(text: str) -> str:
        return " ".join(text.strip().split())

    async def retrieve_context(self, query: str, top_k: int, threshold: float) -> List[SearchHit]:
        try:
            hits = await self.vector_store.search(query, top_k=top_k, threshold=threshold)
        except DimensionMismatch:
            self.logger.exception("Index and query embeddings disagree; answering without context")
            return []

        self.logger.info(
            "Retrieved context",
            extra={
                "requested": top_k,
                "returned": len(hits),
                "top_score": round(hits[0].score, 3) if hits else None,
            },
        )
        return hits

    async def _compose_reply(
        self,
        message: str,
        hits: Sequence[SearchHit],
        history: Sequence[ChatMessage],
    ) -> tuple[str, str]:
        if not hits:
            return DEFAULT_REPLY, FALLBACK_MODEL

        if self.llm_client is not None:
            try:
                answer = await self.llm_client.chat(self._build_messages(message, hits, history))
            except Exception:
                self.logger.exception("LLM call failed, answering from retrieved context")
            else:
                if answer.strip():
                    return answer.strip(), self.llm_client.model

        return self._context_reply(hits[0]), FALLBACK_MODEL

    @staticmethod
    def _context_reply(hit: SearchHit) -> str:
        title = (hit.metadata or {}).get("title")
        return f"{title}: {hit.content}" if title else hit.content

    @staticmethod
    def _build_messages(
        message: str,
        hits: Sequence[SearchHit],
        history: Sequence[ChatMessage],
    ) -> List[Dict[str, str]]:
        passages = []
        for idx, hit in enumerate(hits, start=1):
            title = (hit.metadata or {}).get("title") or hit.id
            passages.append(f"[{idx}] {title} (score {hit.score:.2f})\n{hit.content}")

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "system", "content": "Reference passages:\n\n" + "\n\n".join(passages)},
        ]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": message})
        return messages


__all__ = ["ChatService", "DEFAULT_REPLY", "FALLBACK_MODEL"]
