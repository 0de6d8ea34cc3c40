"""Document/chunk persistence backends."""

from typing import Any

from shadowindex.storage.base import DocumentStore, StoreSnapshot
from shadowindex.storage.rest_store import RestDocumentStore
from shadowindex.storage.sqlite_store import SQLiteDocumentStore


def get_document_store(config: Any) -> DocumentStore:
    """Build the store selected by config.store.backend."""
    store_cfg = config.store
    if store_cfg.backend == "rest":
        return RestDocumentStore(store_cfg.rest_url, store_cfg.rest_key, timeout=store_cfg.timeout)
    return SQLiteDocumentStore(config.sqlite_path)


__all__ = [
    "DocumentStore",
    "RestDocumentStore",
    "SQLiteDocumentStore",
    "StoreSnapshot",
    "get_document_store",
]
