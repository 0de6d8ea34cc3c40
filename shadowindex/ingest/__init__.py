"""Ingest: document model, chunking, and the local file document producer."""

from shadowindex.ingest.chunking import split_text_into_chunks
from shadowindex.ingest.loader import iter_documents, load_document
from shadowindex.ingest.models import (
    Chunk,
    Document,
    DocumentStatus,
    EmbeddedChunk,
    IndexingStatus,
    SearchResult,
)

__all__ = [
    "Chunk",
    "Document",
    "DocumentStatus",
    "EmbeddedChunk",
    "IndexingStatus",
    "SearchResult",
    "iter_documents",
    "load_document",
    "split_text_into_chunks",
]
