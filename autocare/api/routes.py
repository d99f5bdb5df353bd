from __future__ import annotations

import logging
import math

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status

from autocare.config import Settings
from autocare.indexing.pipeline import NoDocumentsFound, ReindexService
from autocare.models.schemas import (
    AddDocumentsRequest,
    AddDocumentsResponse,
    ChatRequest,
    ChatResponse,
    ChatTurn,
    ClearIndexResponse,
    DocumentUpdate,
    DocumentView,
    IndexedDocumentSummary,
    IndexStatusResponse,
    ReindexResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SessionHistoryResponse,
    SessionStatsResponse,
)
from autocare.rag.pipeline import ChatService
from autocare.sessions.cache import SessionCache
from autocare.vector_store import InMemoryVectorStore

router = APIRouter()
logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> InMemoryVectorStore:
    return request.app.state.vector_store


def get_session_cache(request: Request) -> SessionCache:
    return request.app.state.session_cache


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


def require_admin(
    settings_: Settings = Depends(get_settings),
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
) -> None:
    """Admin routes are open when no token is configured (local demo)."""
    if settings_.admin_token is None:
        return
    if x_admin_token != settings_.admin_token.get_secret_value():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


# --- Index administration ---
@router.post("/reindex", response_model=ReindexResponse, summary="Rebuild the index from the docs directory")
async def reindex(
    _: None = Depends(require_admin),
    store: InMemoryVectorStore = Depends(get_store),
    settings_: Settings = Depends(get_settings),
) -> ReindexResponse:
    logger.info("Reindex requested", extra={"docs_dir": settings_.docs_dir})
    try:
        summary = await ReindexService(store, settings_.docs_dir).run()
    except NoDocumentsFound as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ReindexResponse(
        documents_indexed=summary.indexed_documents,
        index_size=summary.index_size,
        elapsed_sec=round(summary.elapsed_sec, 3),
    )


@router.get("/reindex/status", response_model=IndexStatusResponse, summary="Index statistics")
def reindex_status(store: InMemoryVectorStore = Depends(get_store)) -> IndexStatusResponse:
    stats = store.get_stats()
    return IndexStatusResponse(
        index_name=stats["index_name"],
        document_count=stats["document_count"],
        documents=[
            IndexedDocumentSummary(
                id=doc["id"],
                content_length=doc["content_length"],
                category=(doc["metadata"] or {}).get("category"),
            )
            for doc in stats["documents"]
        ],
    )


@router.delete("/reindex/clear", response_model=ClearIndexResponse, summary="Empty the index")
def clear_index(
    _: None = Depends(require_admin),
    store: InMemoryVectorStore = Depends(get_store),
) -> ClearIndexResponse:
    previous = store.size()
    store.clear()
    logger.info("Vector store cleared", extra={"previous_size": previous})
    return ClearIndexResponse(previous_size=previous, current_size=store.size())


# --- Documents ---
@router.post("/documents", response_model=AddDocumentsResponse, summary="Index a batch of documents")
async def add_documents(
    body: AddDocumentsRequest,
    _: None = Depends(require_admin),
    store: InMemoryVectorStore = Depends(get_store),
) -> AddDocumentsResponse:
    await store.add_documents(body.documents)
    return AddDocumentsResponse(indexed=len(body.documents), index_size=store.size())


@router.get("/documents/{doc_id}", response_model=DocumentView, summary="Fetch one indexed document")
def get_document(doc_id: str, store: InMemoryVectorStore = Depends(get_store)) -> DocumentView:
    record = store.get_document(doc_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return DocumentView(
        id=record.id,
        content=record.content,
        metadata=record.metadata,
        embedding_dims=len(record.embedding),
    )


@router.put("/documents/{doc_id}", response_model=DocumentView, summary="Replace and re-embed a document")
async def update_document(
    doc_id: str,
    body: DocumentUpdate,
    _: None = Depends(require_admin),
    store: InMemoryVectorStore = Depends(get_store),
) -> DocumentView:
    await store.update_document(doc_id, body.content, body.metadata)
    return get_document(doc_id, store)


@router.delete("/documents/{doc_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a document")
def delete_document(
    doc_id: str,
    _: None = Depends(require_admin),
    store: InMemoryVectorStore = Depends(get_store),
) -> Response:
    if not store.delete_document(doc_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Retrieval ---
@router.post("/search", response_model=SearchResponse, summary="Semantic search over the index")
async def search(
    body: SearchRequest,
    store: InMemoryVectorStore = Depends(get_store),
    settings_: Settings = Depends(get_settings),
) -> SearchResponse:
    hits = await store.search(
        body.query,
        top_k=body.top_k or settings_.search_top_k,
        threshold=body.threshold if body.threshold is not None else settings_.search_threshold,
    )
    return SearchResponse(
        query=body.query,
        results=[SearchResult(id=h.id, score=h.score, content=h.content, metadata=h.metadata) for h in hits],
    )


# --- Chatbot ---
@router.post("/chatbot/message", response_model=ChatResponse, summary="Retrieval-augmented chat reply")
async def chatbot_message(
    body: ChatRequest,
    response: Response,
    cache: SessionCache = Depends(get_session_cache),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    if body.session_id and not cache.check_rate_limit(body.session_id):
        retry = math.ceil(cache.retry_after(body.session_id)) or 1
        logger.warning("Chat rate limit exceeded", extra={"session_id": body.session_id})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests for this session",
            headers={"Retry-After": str(retry)},
        )

    result = await service.reply(body)
    if not body.session_id:
        # First message of a new session counts against its window too.
        cache.check_rate_limit(result.session_id)
    response.headers["X-Session-ID"] = result.session_id
    return result


# --- Sessions ---
@router.get("/sessions/stats", response_model=SessionStatsResponse, summary="Session cache statistics")
def session_stats(cache: SessionCache = Depends(get_session_cache)) -> SessionStatsResponse:
    return SessionStatsResponse(**cache.get_stats())


@router.get("/sessions/{session_id}", response_model=SessionHistoryResponse, summary="Session message window")
def session_history(session_id: str, cache: SessionCache = Depends(get_session_cache)) -> SessionHistoryResponse:
    session = cache.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return SessionHistoryResponse(
        session_id=session_id,
        created_at=session.created_at,
        messages=[ChatTurn(role=m.role, content=m.content, timestamp=m.timestamp) for m in session.messages],
    )


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Forget a session")
def delete_session(session_id: str, cache: SessionCache = Depends(get_session_cache)) -> Response:
    if not cache.delete(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
