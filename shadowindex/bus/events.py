"""Event types for the indexing bus."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Literal

from shadowindex.ingest.models import EmbeddedChunk, IndexingStatus

EventKind = Literal["status", "data"]

StatusCallback = Callable[[str, IndexingStatus], None]
DataCallback = Callable[[str, list[EmbeddedChunk]], None]


@dataclass(frozen=True)
class IndexEvent:
    """A status transition or a completed-data delivery for one document."""

    kind: EventKind
    document_id: str
    status: IndexingStatus | None = None
    chunks: list[EmbeddedChunk] = field(default_factory=list)

    @classmethod
    def status_event(cls, document_id: str, status: IndexingStatus) -> IndexEvent:
        return cls(kind="status", document_id=document_id, status=status)

    @classmethod
    def data_event(cls, document_id: str, chunks: list[EmbeddedChunk]) -> IndexEvent:
        return cls(kind="data", document_id=document_id, chunks=list(chunks))
