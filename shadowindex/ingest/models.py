"""Ingest domain model: documents, chunks and embedded chunks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    """Extraction status of a document."""
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class IndexingStatus(str, Enum):
    """Background indexing status; owned by the scheduler once a document is queued."""
    PENDING = "pending"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IndexingStatus.COMPLETED, IndexingStatus.FAILED)


@dataclass
class Document:
    """A document produced by ingestion. content is raw text, or base64 for binary types."""

    id: str
    name: str
    content: str = ""
    type: str = "text/plain"
    size: int = 0
    path: str = ""
    module_name: str = "General"
    status: DocumentStatus = DocumentStatus.PROCESSING
    indexing_status: IndexingStatus | None = None
    is_selected: bool = True

    @property
    def is_image(self) -> bool:
        return (self.type or "").startswith("image/")

    @property
    def is_ready(self) -> bool:
        return self.status == DocumentStatus.READY

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "type": self.type,
            "size": self.size,
            "path": self.path,
            "module_name": self.module_name,
            "status": self.status.value,
            "indexing_status": self.indexing_status.value if self.indexing_status else None,
            "is_selected": self.is_selected,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        indexing = data.get("indexing_status")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            content=data.get("content") or "",
            type=data.get("type") or "text/plain",
            size=int(data.get("size") or 0),
            path=data.get("path") or "",
            module_name=data.get("module_name") or "General",
            status=DocumentStatus(data.get("status") or DocumentStatus.READY.value),
            indexing_status=IndexingStatus(indexing) if indexing else None,
            is_selected=bool(data.get("is_selected", True)),
        )


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's text. Offsets are character-based."""

    id: str
    document_id: str
    content: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class EmbeddedChunk(Chunk):
    """Chunk plus its embedding vector."""

    embedding: list[float] = field(default_factory=list)

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float]) -> EmbeddedChunk:
        return cls(
            id=chunk.id,
            document_id=chunk.document_id,
            content=chunk.content,
            start_index=chunk.start_index,
            end_index=chunk.end_index,
            embedding=list(embedding),
        )


@dataclass(frozen=True)
class SearchResult(EmbeddedChunk):
    """Embedded chunk scored against a query (cosine; -1 on dimension mismatch)."""

    score: float = 0.0
