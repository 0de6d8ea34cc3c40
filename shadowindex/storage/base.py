"""Document/chunk store contract."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from shadowindex.ingest.models import Document, EmbeddedChunk


@dataclass
class StoreSnapshot:
    """Everything a store holds, as returned by fetch_all()."""

    documents: list[Document] = field(default_factory=list)
    embeddings: list[EmbeddedChunk] = field(default_factory=list)


@runtime_checkable
class DocumentStore(Protocol):
    """Persistence for documents and their embedded chunks."""

    name: str

    def upsert_documents(self, documents: Sequence[Document]) -> None: ...

    def upsert_embeddings(self, chunks: Sequence[EmbeddedChunk]) -> None: ...

    def fetch_all(self) -> StoreSnapshot: ...

    def delete_document(self, document_id: str) -> None:
        """Remove a document and all of its chunks."""
        ...

    def delete_all(self) -> None: ...
