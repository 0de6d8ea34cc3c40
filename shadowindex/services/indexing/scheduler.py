"""
Shadow indexer: bounded-concurrency background indexing of queued documents.

State machine per document:
- queued: waiting in the FIFO (get_queue_length).
- dispatched: a worker task owns it (get_active_count), at most max_concurrent.
- worker: indexing -> completed | failed, reported through the inbox.

Only the scheduler mutates the FIFO and the active count. Workers post
WorkerMessage objects to the inbox; the pump forwards them to the event bus,
and on a terminal status frees the slot and admits the next document.

At most one run per document id is in flight. Queuing an id that is already
queued replaces the queued version in place. Queuing an id that is in flight
supersedes that run: its remaining events are discarded and the new version
joins the queue when the run ends.
All public methods must be called from the event loop thread.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable

from loguru import logger

from shadowindex.bus.events import DataCallback, IndexEvent, StatusCallback
from shadowindex.bus.queue import EventHandler, IndexEventBus
from shadowindex.config.schema import IndexingConfig
from shadowindex.ingest.models import Document, IndexingStatus
from shadowindex.services.indexing.worker import WorkerMessage, index_document
from shadowindex.services.retrieval.embedding_provider import EmbeddingProvider


class ShadowIndexer:
    """Turns queued documents into embedded chunks without blocking the caller."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        config: IndexingConfig | None = None,
        bus: IndexEventBus | None = None,
    ):
        self.provider = provider
        self.config = config or IndexingConfig()
        self.bus = bus or IndexEventBus()
        self._queue: deque[Document] = deque()
        self._active = 0
        self._workers: dict[asyncio.Task[None], Document] = {}
        # Ids dispatched whose terminal message the pump has not handled yet.
        self._in_flight: set[str] = set()
        # Newer versions of in-flight documents, queued when the current run ends.
        self._replacements: dict[str, Document] = {}
        # Worker tasks that already posted their terminal message.
        self._reported: set[asyncio.Task[None]] = set()
        self._inbox: asyncio.Queue[WorkerMessage] | None = None
        self._pump_task: asyncio.Task[None] | None = None
        self._idle: asyncio.Event | None = None
        self._accepting = False

    @property
    def max_concurrent(self) -> int:
        return self.config.max_concurrent

    @property
    def running(self) -> bool:
        return self._pump_task is not None and not self._pump_task.done()

    # -- consumer surface -------------------------------------------------

    def set_status_callback(self, callback: StatusCallback | None) -> None:
        """Single slot: replaces any previously registered status callback."""
        self.bus.set_status_callback(callback)

    def set_data_callback(self, callback: DataCallback | None) -> None:
        """Single slot: replaces any previously registered data callback."""
        self.bus.set_data_callback(callback)

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        return self.bus.subscribe(handler)

    def get_queue_length(self) -> int:
        return len(self._queue) + len(self._replacements)

    def get_active_count(self) -> int:
        return self._active

    def is_pending(self, document_id: str) -> bool:
        """True while the document is queued or being indexed."""
        return document_id in self._in_flight or any(d.id == document_id for d in self._queue)

    def queue_document(self, doc: Document) -> bool:
        """Enqueue a document for indexing. Images are not indexed: returns False, no event."""
        if doc.is_image:
            logger.debug(f"Shadow indexer skip image document {doc.id} ({doc.type})")
            return False
        if doc.id in self._in_flight:
            self._replacements[doc.id] = doc
            logger.debug(f"Re-queued {doc.id} while indexing; the running version will be discarded")
            return True
        for i, queued in enumerate(self._queue):
            if queued.id == doc.id:
                self._queue[i] = doc
                logger.debug(f"Replaced queued version of {doc.id}")
                return True
        self._queue.append(doc)
        if self._idle is not None:
            self._idle.clear()
        logger.debug(f"Queued {doc.id} for indexing (queue={len(self._queue)}, active={self._active})")
        self._process_next()
        return True

    # -- lifecycle --------------------------------------------------------

    async def start(self) -> None:
        """Start the pump on the running loop and admit anything queued before start."""
        if self.running:
            return
        self._inbox = asyncio.Queue()
        self._idle = asyncio.Event()
        self._accepting = True
        self._pump_task = asyncio.create_task(self._pump(), name="shadow-indexer-pump")
        self._update_idle()
        logger.debug(f"Shadow indexer started (max_concurrent={self.max_concurrent})")
        self._process_next()

    async def join(self) -> None:
        """Wait until the queue is empty and no document is in flight."""
        if self._idle is None:
            raise RuntimeError("ShadowIndexer.join() called before start()")
        if not self.running and not self._idle.is_set():
            raise RuntimeError(
                f"ShadowIndexer.join() after shutdown() with {self.get_queue_length()} documents still queued"
            )
        await self._idle.wait()

    async def shutdown(self, *, cancel: bool = False) -> None:
        """
        Stop admitting documents and stop the pump.

        In-flight documents run to completion unless cancel=True, in which case they
        are reported as failed. Documents still queued stay in the queue.
        """
        if not self.running:
            return
        self._accepting = False
        workers = list(self._workers)
        if cancel:
            for task in workers:
                task.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        self._drain_inbox()
        assert self._pump_task is not None
        self._pump_task.cancel()
        try:
            await self._pump_task
        except asyncio.CancelledError:
            pass
        self._pump_task = None
        if self._queue:
            logger.debug(f"Shadow indexer stopped with {len(self._queue)} documents still queued")
        logger.debug("Shadow indexer stopped")

    # -- admission and pump -----------------------------------------------

    def _process_next(self) -> None:
        if not self._accepting or self._inbox is None:
            return
        while self._active < self.max_concurrent and self._queue:
            doc = self._queue.popleft()
            self._active += 1
            self._in_flight.add(doc.id)
            task = asyncio.create_task(self._run_worker(doc), name=f"shadow-index-{doc.id}")
            self._workers[task] = doc
            task.add_done_callback(self._on_worker_done)
            logger.debug(f"Dispatched {doc.id} (active={self._active}, queue={len(self._queue)})")

    async def _run_worker(self, doc: Document) -> None:
        assert self._inbox is not None
        inbox = self._inbox
        task = asyncio.current_task()

        def post(message: WorkerMessage) -> None:
            if message.status.is_terminal:
                self._reported.add(task)
            inbox.put_nowait(message)

        try:
            await index_document(
                doc,
                self.provider,
                post,
                chunk_size=self.config.chunk_size,
                chunk_overlap=self.config.chunk_overlap,
                embed_timeout=self.config.embed_timeout,
            )
        except Exception as e:
            logger.exception(f"Indexing worker for {doc.id} crashed")
            if task not in self._reported:
                post(WorkerMessage(doc.id, IndexingStatus.FAILED, error=str(e)))

    def _on_worker_done(self, task: asyncio.Task[None]) -> None:
        doc = self._workers.pop(task)
        reported = task in self._reported
        self._reported.discard(task)
        # A cancelled worker may stop before posting its terminal message.
        if task.cancelled() and not reported and self._inbox is not None:
            self._inbox.put_nowait(WorkerMessage(doc.id, IndexingStatus.FAILED, error="cancelled"))

    async def _pump(self) -> None:
        assert self._inbox is not None
        while True:
            message = await self._inbox.get()
            self._handle(message)

    def _drain_inbox(self) -> None:
        assert self._inbox is not None
        while not self._inbox.empty():
            self._handle(self._inbox.get_nowait())

    def _handle(self, message: WorkerMessage) -> None:
        doc_id = message.document_id
        superseded = doc_id in self._replacements
        if not superseded:
            self.bus.publish(IndexEvent.status_event(doc_id, message.status))
        if not message.status.is_terminal:
            return
        if superseded:
            self._queue.append(self._replacements.pop(doc_id))
            logger.debug(f"Discarded {message.status.value} result of superseded run for {doc_id}")
        elif message.status == IndexingStatus.COMPLETED and message.chunks:
            self.bus.publish(IndexEvent.data_event(doc_id, message.chunks))
        self._in_flight.discard(doc_id)
        self._active -= 1
        self._process_next()
        self._update_idle()

    def _update_idle(self) -> None:
        if self._idle is None:
            return
        if self._active == 0 and not self._queue:
            self._idle.set()
        else:
            self._idle.clear()
