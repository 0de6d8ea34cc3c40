"""Knowledge service: owns the document set, the shadow indexer and the embedded-chunk cache."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger

from shadowindex.config.schema import Config
from shadowindex.ingest.models import (
    Document,
    DocumentStatus,
    EmbeddedChunk,
    IndexingStatus,
    SearchResult,
)
from shadowindex.services.indexing.scheduler import ShadowIndexer
from shadowindex.services.retrieval.embedding_provider import EmbeddingProvider
from shadowindex.services.retrieval.similarity import find_most_relevant_chunks
from shadowindex.storage.base import DocumentStore
from shadowindex.utils.exceptions import NotFoundError, ShadowIndexError

# Statuses left behind by a run that stopped before the document finished indexing.
_INTERRUPTED = (IndexingStatus.PENDING, IndexingStatus.INDEXING)


class KnowledgeService:
    """
    Application-side glue around the shadow indexer.

    Tracks documents and their indexing status, persists documents and finished
    chunks to the store (best effort), keeps an in-memory cache of embedded
    chunks per document, and answers top-K queries restricted to selected
    documents.
    """

    def __init__(
        self,
        config: Config,
        provider: EmbeddingProvider,
        store: DocumentStore,
        indexer: ShadowIndexer | None = None,
    ):
        self.config = config
        self.provider = provider
        self.store = store
        self.indexer = indexer or ShadowIndexer(provider, config.indexing)
        self.indexer.set_status_callback(self._on_status)
        self.indexer.set_data_callback(self._on_data)
        self._documents: dict[str, Document] = {}
        self._chunks: dict[str, list[EmbeddedChunk]] = {}

    async def start(self) -> None:
        await self.indexer.start()

    async def close(self, *, cancel: bool = False) -> None:
        await self.indexer.shutdown(cancel=cancel)

    async def __aenter__(self) -> KnowledgeService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def wait_until_indexed(self) -> None:
        await self.indexer.join()

    @property
    def documents(self) -> list[Document]:
        return list(self._documents.values())

    def find_document(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    def get_document(self, document_id: str) -> Document:
        doc = self._documents.get(document_id)
        if doc is None:
            raise NotFoundError("Document", document_id)
        return doc

    def chunks_for(self, document_id: str) -> list[EmbeddedChunk]:
        return list(self._chunks.get(document_id, []))

    # -- loading and ingestion --------------------------------------------

    def load(self, *, resume: bool = True) -> int:
        """
        Populate documents and the chunk cache from the store. Returns documents loaded.

        With resume=True, documents whose indexing was interrupted (pending/indexing)
        are queued again. Failed documents are left as they are.
        """
        snapshot = self.store.fetch_all()
        for doc in snapshot.documents:
            self._documents[doc.id] = doc
        for chunk in snapshot.embeddings:
            if chunk.document_id not in self._documents:
                logger.warning(f"Ignoring orphan chunk {chunk.id} (document {chunk.document_id} missing)")
                continue
            self._chunks.setdefault(chunk.document_id, []).append(chunk)
        if resume:
            for doc in snapshot.documents:
                if doc.is_ready and doc.indexing_status in _INTERRUPTED:
                    self._queue(doc)
        logger.debug(f"Loaded {len(snapshot.documents)} documents, {len(snapshot.embeddings)} chunks from {self.store.name}")
        return len(snapshot.documents)

    def add_documents(self, documents: Iterable[Document]) -> int:
        """Register documents, persist the ready ones and queue text documents. Returns how many were queued."""
        docs = list(documents)
        already_pending: set[str] = set()
        for doc in docs:
            previous = self._documents.get(doc.id)
            if previous is not None and previous.content == doc.content and self.indexer.is_pending(doc.id):
                # Same text is already queued or indexing (e.g. resumed by load()): keep that run.
                doc.indexing_status = previous.indexing_status
                already_pending.add(doc.id)
            elif previous is not None:
                # Re-added: drop chunks from the previous version so a shorter text leaves no stale ones.
                self._chunks.pop(doc.id, None)
                try:
                    self.store.delete_document(doc.id)
                except ShadowIndexError as e:
                    logger.warning(f"Clearing previous version of {doc.id} failed: {e}")
            self._documents[doc.id] = doc
        ready = [d for d in docs if d.is_ready]
        self._persist_documents(ready)
        queued = 0
        for doc in ready:
            if doc.id in already_pending:
                queued += 1
            elif not doc.is_image and self._queue(doc):
                queued += 1
        return queued

    def _queue(self, doc: Document) -> bool:
        doc.indexing_status = IndexingStatus.PENDING
        return self.indexer.queue_document(doc)

    # -- indexer callbacks ------------------------------------------------

    def _on_status(self, document_id: str, status: IndexingStatus) -> None:
        doc = self._documents.get(document_id)
        if doc is None:
            return
        doc.indexing_status = status
        if status.is_terminal:
            self._persist_documents([doc])

    def _on_data(self, document_id: str, chunks: list[EmbeddedChunk]) -> None:
        if document_id not in self._documents:
            logger.debug(f"Dropping {len(chunks)} chunks for removed document {document_id}")
            return
        self._chunks[document_id] = list(chunks)
        try:
            self.store.upsert_embeddings(chunks)
        except ShadowIndexError as e:
            logger.warning(f"Saving embeddings for {document_id} failed: {e}")

    def _persist_documents(self, docs: list[Document]) -> None:
        if not docs:
            return
        try:
            self.store.upsert_documents(docs)
        except ShadowIndexError as e:
            logger.warning(f"Saving {len(docs)} documents failed: {e}")

    # -- management -------------------------------------------------------

    def delete_document(self, document_id: str) -> None:
        """Remove a document and its chunks from memory and from the store."""
        self._documents.pop(document_id, None)
        self._chunks.pop(document_id, None)
        self.store.delete_document(document_id)

    def delete_all(self) -> None:
        self._documents.clear()
        self._chunks.clear()
        self.store.delete_all()

    def set_selected(self, document_id: str, selected: bool) -> None:
        self.get_document(document_id).is_selected = selected

    def select_module(self, module_name: str, selected: bool) -> int:
        """Select or deselect every document in a module. Returns how many changed."""
        changed = 0
        for doc in self._documents.values():
            if doc.module_name == module_name and doc.is_selected != selected:
                doc.is_selected = selected
                changed += 1
        return changed

    def indexing_summary(self) -> dict[str, int]:
        docs = self._documents.values()
        return {
            "total": len(self._documents),
            "indexed": sum(1 for d in docs if d.indexing_status == IndexingStatus.COMPLETED),
            "pending": sum(1 for d in docs if d.indexing_status in _INTERRUPTED),
            "failed": sum(1 for d in docs if d.indexing_status == IndexingStatus.FAILED),
            "chunks": sum(len(c) for c in self._chunks.values()),
        }

    # -- retrieval --------------------------------------------------------

    async def search(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        """
        Top-K chunks for query, restricted to selected, ready documents.

        Returns [] without calling the provider when nothing text-bearing is selected
        or no chunk has been indexed for the selection.
        """
        query = (query or "").strip()
        if not query:
            return []
        selected = [d for d in self._documents.values() if d.is_selected and d.status == DocumentStatus.READY]
        if not any(not d.is_image for d in selected):
            return []
        candidates = [c for d in selected for c in self._chunks.get(d.id, [])]
        if not candidates:
            return []
        vectors = await self.provider.aembed([query])
        if not vectors or not vectors[0]:
            return []
        return find_most_relevant_chunks(vectors[0], candidates, top_k or self.config.retrieval.top_k)

    def build_context(self, results: Iterable[SearchResult]) -> str:
        """Render results as prompt context, one block per chunk labelled with its file name."""
        blocks = []
        for r in results:
            doc = self._documents.get(r.document_id)
            name = doc.name if doc else r.document_id
            blocks.append(f"--- FILE: {name} ---\n{r.content}\n")
        return "\n\n".join(blocks)
