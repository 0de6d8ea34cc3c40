"""Background indexing: bounded-concurrency scheduler and per-document worker."""

from shadowindex.services.indexing.scheduler import ShadowIndexer
from shadowindex.services.indexing.worker import WorkerMessage, index_document

__all__ = ["ShadowIndexer", "WorkerMessage", "index_document"]
