"""
In-memory VectorStore with JSON snapshot persistence.

Records live in a dict keyed by id. Batch operations, updates, deletes and
``clear`` write the snapshot; the single-document ``add_document`` does not.
Disk failures are logged and never touch the in-memory index.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError

from autocare.embeddings.client import EmbeddingsClient
from autocare.vector_store.base import DocumentLike, SearchHit, VectorRecord, VectorStore
from autocare.vector_store.similarity import DimensionMismatch, cosine_similarity

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Reading or writing the snapshot file failed."""


class SnapshotDocument(BaseModel):
    id: str
    content: str
    embedding: List[float] = Field(..., min_length=1)
    metadata: Optional[Dict[str, Any]] = None


class InMemoryVectorStore(VectorStore):
    def __init__(
        self,
        embeddings_client: EmbeddingsClient,
        index_name: str = "default",
        persist_path: str | Path | None = None,
    ) -> None:
        self.embeddings_client = embeddings_client
        self.index_name = index_name
        self.persist_path = Path(persist_path) if persist_path else None
        self._records: Dict[str, VectorRecord] = {}

        if self.persist_path and self.persist_path.exists():
            self.load()
        logger.info(
            "InMemoryVectorStore initialised",
            extra={"index_name": self.index_name, "persist_path": str(self.persist_path), "size": self.size()},
        )

    # --- Mutations ---
    async def _embed_record(self, id: str, content: str, metadata: Optional[Dict[str, Any]]) -> VectorRecord:
        result = await self.embeddings_client.embed_text(content)
        return VectorRecord(id=id, content=content, embedding=result.vector, metadata=_copy_metadata(metadata))

    async def add_document(self, id: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        record = await self._embed_record(id, content, metadata)
        self._records[id] = record
        logger.debug("Indexed document", extra={"id": id})

    async def add_documents(self, documents: Iterable[DocumentLike]) -> None:
        count = 0
        for doc in documents:
            await self.add_document(doc.id, doc.content, doc.metadata)
            count += 1
        logger.info("Indexed document batch", extra={"count": count, "index_name": self.index_name})
        self._save_if_configured()

    async def update_document(self, id: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._records[id] = await self._embed_record(id, content, metadata)
        self._save_if_configured()

    async def rebuild(self, documents: Iterable[DocumentLike]) -> None:
        """Embed everything first, then swap the whole collection in one step."""
        staged: Dict[str, VectorRecord] = {}
        for doc in documents:
            staged[doc.id] = await self._embed_record(doc.id, doc.content, doc.metadata)
        self._records = staged
        logger.info("Index rebuilt", extra={"size": len(staged), "index_name": self.index_name})
        self._save_if_configured()

    def delete_document(self, id: str) -> bool:
        removed = self._records.pop(id, None) is not None
        if removed:
            self._save_if_configured()
        return removed

    def clear(self) -> None:
        self._records.clear()
        self._save_if_configured()

    # --- Queries ---
    async def search(self, query: str, top_k: int = 5, threshold: float = 0.55) -> List[SearchHit]:
        if top_k <= 0:
            return []

        query_vector = (await self.embeddings_client.embed_text(query)).vector
        records = list(self._records.values())
        for record in records:
            if len(record.embedding) != len(query_vector):
                raise DimensionMismatch(len(query_vector), len(record.embedding), record_id=record.id)

        hits: List[SearchHit] = []
        for record in records:
            score = cosine_similarity(query_vector, record.embedding)
            if score >= threshold:
                hits.append(
                    SearchHit(
                        id=record.id,
                        score=score,
                        content=record.content,
                        metadata=_copy_metadata(record.metadata),
                    )
                )

        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:top_k]

    def get_document(self, id: str) -> Optional[VectorRecord]:
        record = self._records.get(id)
        if record is None:
            return None
        return VectorRecord(
            id=record.id,
            content=record.content,
            embedding=list(record.embedding),
            metadata=_copy_metadata(record.metadata),
        )

    def size(self) -> int:
        return len(self._records)

    def get_document_ids(self) -> List[str]:
        return list(self._records)

    def get_stats(self) -> Dict[str, Any]:
        dims = sorted({len(r.embedding) for r in self._records.values()})
        return {
            "index_name": self.index_name,
            "document_count": len(self._records),
            "persist_path": str(self.persist_path) if self.persist_path else None,
            "dimensions": dims,
            "documents": [
                {
                    "id": record.id,
                    "content_length": len(record.content),
                    "embedding_dims": len(record.embedding),
                    "metadata": _copy_metadata(record.metadata),
                }
                for record in self._records.values()
            ],
        }

    # --- Persistence ---
    def _save_if_configured(self) -> None:
        if self.persist_path:
            self.save()

    def save(self) -> bool:
        if not self.persist_path:
            return False
        try:
            self._write_snapshot(self.persist_path)
        except PersistenceError as exc:
            logger.error("Failed to save vector store: %s", exc, extra={"path": str(self.persist_path)})
            return False
        logger.info("Vector store saved", extra={"path": str(self.persist_path), "size": self.size()})
        return True

    def load(self) -> bool:
        if not self.persist_path:
            return False
        try:
            records = self._read_snapshot(self.persist_path)
        except PersistenceError as exc:
            logger.error("Failed to load vector store: %s", exc, extra={"path": str(self.persist_path)})
            return False
        self._records = records
        logger.info("Vector store loaded", extra={"path": str(self.persist_path), "size": len(records)})
        return True

    def _write_snapshot(self, path: Path) -> None:
        data = {
            "indexName": self.index_name,
            "documents": [
                {
                    "id": record.id,
                    "content": record.content,
                    "embedding": record.embedding,
                    "metadata": record.metadata,
                }
                for record in self._records.values()
            ],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as fh:
                tmp_name = fh.name
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(str(exc)) from exc

    @staticmethod
    def _read_snapshot(path: Path) -> Dict[str, VectorRecord]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(str(exc)) from exc

        if not isinstance(data, dict) or not isinstance(data.get("documents"), list):
            raise PersistenceError("snapshot has no 'documents' list")

        records: Dict[str, VectorRecord] = {}
        for position, raw in enumerate(data["documents"]):
            try:
                doc = SnapshotDocument.model_validate(raw)
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid snapshot record",
                    extra={"position": position, "errors": exc.error_count()},
                )
                continue
            records[doc.id] = VectorRecord(
                id=doc.id,
                content=doc.content,
                embedding=doc.embedding,
                metadata=doc.metadata,
            )
        return records


def _copy_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return dict(metadata) if metadata is not None else None


__all__ = ["InMemoryVectorStore", "PersistenceError", "SnapshotDocument"]
