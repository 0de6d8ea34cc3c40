"""Tests for the SQLite document store."""

from pathlib import Path

import pytest

from conftest import make_doc
from shadowindex.config.schema import Config, StoreConfig
from shadowindex.ingest.models import DocumentStatus, EmbeddedChunk, IndexingStatus
from shadowindex.storage import DocumentStore, SQLiteDocumentStore, get_document_store
from shadowindex.utils.exceptions import StoreError


def _chunk(doc_id: str, n: int, embedding=None) -> EmbeddedChunk:
    return EmbeddedChunk(
        id=f"{doc_id}_{n}",
        document_id=doc_id,
        content=f"chunk {n} of {doc_id}",
        start_index=n * 10,
        end_index=n * 10 + 10,
        embedding=embedding or [0.5, -1.0, 0.25],
    )


@pytest.fixture
def store(tmp_path: Path) -> SQLiteDocumentStore:
    return SQLiteDocumentStore(tmp_path / "nested" / "index.db")


def test_creates_parent_directory(store: SQLiteDocumentStore) -> None:
    assert store.db_path.exists()
    assert isinstance(store, DocumentStore)


def test_round_trip_documents_and_embeddings(store: SQLiteDocumentStore) -> None:
    doc = make_doc(
        "d1",
        "hello",
        path="src/app.js",
        module_name="src",
        type="text/javascript",
        size=5,
        indexing_status=IndexingStatus.COMPLETED,
        is_selected=False,
    )
    store.upsert_documents([doc])
    store.upsert_embeddings([_chunk("d1", 0), _chunk("d1", 1, [1.0, 2.0, 0.125])])

    snapshot = store.fetch_all()
    assert len(snapshot.documents) == 1
    loaded = snapshot.documents[0]
    assert loaded.to_dict() == doc.to_dict()
    assert loaded.status == DocumentStatus.READY
    assert loaded.is_selected is False
    assert [c.id for c in snapshot.embeddings] == ["d1_0", "d1_1"]
    assert snapshot.embeddings[0].embedding == [0.5, -1.0, 0.25]
    assert snapshot.embeddings[1].embedding == [1.0, 2.0, 0.125]
    assert snapshot.embeddings[1].start_index == 10


def test_upsert_document_updates_existing_row(store: SQLiteDocumentStore) -> None:
    store.upsert_documents([make_doc("d1", "v1", indexing_status=IndexingStatus.PENDING)])
    store.upsert_documents([make_doc("d1", "v2", indexing_status=IndexingStatus.FAILED)])
    docs = store.fetch_all().documents
    assert len(docs) == 1
    assert docs[0].content == "v2"
    assert docs[0].indexing_status == IndexingStatus.FAILED


def test_upsert_embedding_replaces_same_id(store: SQLiteDocumentStore) -> None:
    store.upsert_documents([make_doc("d1")])
    store.upsert_embeddings([_chunk("d1", 0)])
    store.upsert_embeddings([_chunk("d1", 0, [0.0, 0.0, 1.0])])
    assert store.count_embeddings() == 1
    assert store.fetch_all().embeddings[0].embedding == [0.0, 0.0, 1.0]


def test_embedding_requires_stored_document(store: SQLiteDocumentStore) -> None:
    with pytest.raises(StoreError) as exc_info:
        store.upsert_embeddings([_chunk("missing", 0)])
    assert exc_info.value.code == "STORE_ERROR"
    assert exc_info.value.details["backend"] == "sqlite"


def test_delete_document_removes_its_chunks_only(store: SQLiteDocumentStore) -> None:
    store.upsert_documents([make_doc("d1"), make_doc("d2")])
    store.upsert_embeddings([_chunk("d1", 0), _chunk("d1", 1), _chunk("d2", 0)])

    store.delete_document("d1")

    snapshot = store.fetch_all()
    assert [d.id for d in snapshot.documents] == ["d2"]
    assert store.count_embeddings("d1") == 0
    assert store.count_embeddings("d2") == 1


def test_delete_unknown_document_is_noop(store: SQLiteDocumentStore) -> None:
    store.upsert_documents([make_doc("d1")])
    store.delete_document("nope")
    assert len(store.fetch_all().documents) == 1


def test_delete_all(store: SQLiteDocumentStore) -> None:
    store.upsert_documents([make_doc("d1"), make_doc("d2")])
    store.upsert_embeddings([_chunk("d1", 0), _chunk("d2", 0)])
    store.delete_all()
    snapshot = store.fetch_all()
    assert snapshot.documents == []
    assert snapshot.embeddings == []


def test_data_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "index.db"
    SQLiteDocumentStore(path).upsert_documents([make_doc("d1", "persisted")])
    assert SQLiteDocumentStore(path).fetch_all().documents[0].content == "persisted"


def test_get_document_store_defaults_to_sqlite_in_workspace(tmp_path: Path) -> None:
    cfg = Config(workspace=str(tmp_path / "ws"))
    store = get_document_store(cfg)
    assert isinstance(store, SQLiteDocumentStore)
    assert store.db_path == tmp_path / "ws" / "shadowindex.db"


def test_get_document_store_explicit_sqlite_path(tmp_path: Path) -> None:
    cfg = Config(store=StoreConfig(sqlite_path=str(tmp_path / "custom.db")))
    assert get_document_store(cfg).db_path == tmp_path / "custom.db"
