from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


# Corpus
class Document(BaseModel):
    """A corpus document; ``metadata`` (title, category, tags, source) is carried opaquely."""

    id: str = Field(..., min_length=1)
    content: str
    metadata: Dict[str, Any] | None = None


class DocumentUpdate(BaseModel):
    content: str
    metadata: Dict[str, Any] | None = None


class DocumentView(BaseModel):
    id: str
    content: str
    metadata: Dict[str, Any] | None = None
    embedding_dims: int


class AddDocumentsRequest(BaseModel):
    documents: List[Document] = Field(..., min_length=1)


class AddDocumentsResponse(BaseModel):
    indexed: int
    index_size: int


# Admin
class ReindexResponse(BaseModel):
    status: Literal["completed"] = Field(default="completed")
    documents_indexed: int = Field(..., ge=0)
    index_size: int = Field(..., ge=0)
    elapsed_sec: float | None = Field(None, ge=0)


class IndexedDocumentSummary(BaseModel):
    id: str
    content_length: int
    category: str | None = None


class IndexStatusResponse(BaseModel):
    status: Literal["active"] = Field(default="active")
    index_name: str
    document_count: int
    documents: List[IndexedDocumentSummary]


class ClearIndexResponse(BaseModel):
    previous_size: int
    current_size: int


# Retrieval
class SearchRequest(BaseModel):
    query: str
    top_k: int | None = Field(default=None, gt=0, le=100)
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)


class SearchResult(BaseModel):
    id: str
    score: float
    content: str
    metadata: Dict[str, Any] | None = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]


# Chat
class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)
    session_id: str | None = None
    top_k: int | None = Field(default=None, gt=0, le=20)
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: str


class ChatResponse(BaseModel):
    session_id: str
    reply: str
    sources: List[str]
    similarity: float | None = None
    model: str
    history: List[ChatTurn]


# Sessions
class SessionSummary(BaseModel):
    session_id: str
    message_count: int
    access_count: int
    age_sec: float


class SessionHistoryResponse(BaseModel):
    session_id: str
    created_at: str | None = None
    messages: List[ChatTurn]


class SessionStatsResponse(BaseModel):
    size: int
    max_size: int
    sessions: List[SessionSummary]


__all__ = [
    "AddDocumentsRequest",
    "AddDocumentsResponse",
    "ChatRequest",
    "ChatResponse",
    "ChatTurn",
    "ClearIndexResponse",
    "Document",
    "DocumentUpdate",
    "DocumentView",
    "IndexStatusResponse",
    "IndexedDocumentSummary",
    "ReindexResponse",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
    "SessionHistoryResponse",
    "SessionStatsResponse",
    "SessionSummary",
]
