"""Per-document indexing work: chunk, embed, report back to the scheduler."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from shadowindex.ingest.chunking import split_text_into_chunks
from shadowindex.ingest.models import Document, EmbeddedChunk, IndexingStatus
from shadowindex.services.retrieval.embedding_provider import EmbeddingProvider
from shadowindex.utils.exceptions import TimeoutError, classify_exception, sanitize_error_message


@dataclass(frozen=True)
class WorkerMessage:
    """What a worker reports to the scheduler. chunks is set only on a completed result."""

    document_id: str
    status: IndexingStatus
    chunks: list[EmbeddedChunk] = field(default_factory=list)
    error: str | None = None


PostFn = Callable[[WorkerMessage], None]


async def _embed(provider: EmbeddingProvider, texts: list[str], timeout: float | None):
    if timeout is None:
        return await provider.aembed(texts)
    try:
        return await asyncio.wait_for(provider.aembed(texts), timeout)
    except asyncio.TimeoutError as e:
        raise TimeoutError("embed", timeout) from e


async def index_document(
    doc: Document,
    provider: EmbeddingProvider,
    post: PostFn,
    *,
    chunk_size: int,
    chunk_overlap: int,
    embed_timeout: float | None = None,
) -> None:
    """
    Index one document and post exactly one `indexing` then one terminal message.

    All chunk texts go to the provider in a single call; vectors are matched to
    chunks by position and chunks without a vector are dropped. Errors never
    propagate: they become a `failed` message.
    """
    post(WorkerMessage(doc.id, IndexingStatus.INDEXING))
    try:
        chunks = await asyncio.to_thread(
            split_text_into_chunks, doc.content, doc.id, chunk_size, chunk_overlap
        )
        if not chunks:
            post(WorkerMessage(doc.id, IndexingStatus.COMPLETED))
            return
        vectors = await _embed(provider, [c.content for c in chunks], embed_timeout)
        embedded = [
            EmbeddedChunk.from_chunk(chunk, vec)
            for chunk, vec in zip(chunks, vectors or [])
            if vec
        ]
        dropped = len(chunks) - len(embedded)
        if dropped:
            logger.debug(f"Dropped {dropped}/{len(chunks)} chunks without embedding for {doc.id}")
        post(WorkerMessage(doc.id, IndexingStatus.COMPLETED, chunks=embedded))
    except Exception as e:
        code, _, _ = classify_exception(e)
        message = sanitize_error_message(str(e))
        logger.warning(f"Indexing failed for {doc.name or doc.id} [{code}]: {message}")
        post(WorkerMessage(doc.id, IndexingStatus.FAILED, error=message))
