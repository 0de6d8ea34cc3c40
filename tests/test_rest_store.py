"""Tests for the REST (PostgREST/Supabase-style) document store."""

import json

import httpx
import pytest

from conftest import make_doc
from shadowindex.config.schema import Config, StoreConfig
from shadowindex.ingest.models import DocumentStatus, EmbeddedChunk, IndexingStatus
from shadowindex.storage import RestDocumentStore, get_document_store
from shadowindex.utils.exceptions import StoreError

BASE = "https://project.example.co"


class Recorder:
    """MockTransport handler that records requests and serves canned table rows."""

    def __init__(self, tables: dict[str, list] | None = None, status: int = 200):
        self.tables = tables or {}
        self.status = status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status >= 400:
            return httpx.Response(self.status, text="upstream exploded")
        table = request.url.path.rsplit("/", 1)[-1]
        if request.method == "GET":
            return httpx.Response(200, json=self.tables.get(table, []))
        return httpx.Response(201 if request.method == "POST" else 204)


def _store(recorder: Recorder, url: str = BASE, key: str = "anon-key") -> RestDocumentStore:
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    return RestDocumentStore(url, key, client=client)


def test_disabled_without_credentials() -> None:
    recorder = Recorder()
    store = _store(recorder, key="")
    assert store.enabled is False
    store.upsert_documents([make_doc("d1")])
    store.delete_all()
    snapshot = store.fetch_all()
    assert snapshot.documents == []
    assert snapshot.embeddings == []
    assert recorder.requests == []


def test_upsert_documents_posts_rows_with_merge_preference() -> None:
    recorder = Recorder()
    store = _store(recorder, url=BASE + "/")
    store.upsert_documents([make_doc("d1", "body", path="src/a.php", module_name="src")])

    req = recorder.requests[0]
    assert req.method == "POST"
    assert str(req.url) == f"{BASE}/rest/v1/documents"
    assert req.headers["apikey"] == "anon-key"
    assert req.headers["authorization"] == "Bearer anon-key"
    assert req.headers["prefer"] == "resolution=merge-duplicates,return=minimal"
    body = json.loads(req.content)
    assert body == [
        {
            "id": "d1",
            "name": "d1.txt",
            "type": "text/plain",
            "size": 0,
            "content": "body",
            "path": "src/a.php",
            "module_name": "src",
            "status": "ready",
        }
    ]


def test_upsert_embeddings_sends_vectors() -> None:
    recorder = Recorder()
    chunk = EmbeddedChunk(id="d1_0", document_id="d1", content="c", start_index=0, end_index=1, embedding=[0.1, 0.2])
    _store(recorder).upsert_embeddings([chunk])
    body = json.loads(recorder.requests[0].content)
    assert recorder.requests[0].url.path == "/rest/v1/embeddings"
    assert body[0]["embedding"] == [0.1, 0.2]
    assert body[0]["document_id"] == "d1"


def test_empty_upserts_make_no_request() -> None:
    recorder = Recorder()
    store = _store(recorder)
    store.upsert_documents([])
    store.upsert_embeddings([])
    assert recorder.requests == []


def test_fetch_all_marks_documents_ready_and_parses_vectors() -> None:
    recorder = Recorder(
        tables={
            "documents": [{"id": "d1", "name": "a.md", "type": "text/markdown", "size": 3, "content": "abc", "path": "docs/a.md", "module_name": "docs"}],
            "embeddings": [
                {"id": "d1_0", "document_id": "d1", "content": "abc", "embedding": "[0.5,0.25]", "start_index": 0, "end_index": 3},
                {"id": "d1_1", "document_id": "d1", "content": "c", "embedding": [1, 2], "start_index": 2, "end_index": 3},
            ],
        }
    )
    snapshot = _store(recorder).fetch_all()

    doc = snapshot.documents[0]
    assert doc.status == DocumentStatus.READY
    assert doc.indexing_status == IndexingStatus.COMPLETED
    assert doc.is_selected is True
    assert doc.module_name == "docs"
    assert snapshot.embeddings[0].embedding == [0.5, 0.25]
    assert snapshot.embeddings[1].embedding == [1.0, 2.0]
    assert all(r.url.params["select"] == "*" for r in recorder.requests)


def test_delete_document_removes_chunks_then_document() -> None:
    recorder = Recorder()
    _store(recorder).delete_document("d1")
    assert [(r.method, r.url.path, dict(r.url.params)) for r in recorder.requests] == [
        ("DELETE", "/rest/v1/embeddings", {"document_id": "eq.d1"}),
        ("DELETE", "/rest/v1/documents", {"id": "eq.d1"}),
    ]


def test_delete_all_uses_not_null_filter() -> None:
    recorder = Recorder()
    _store(recorder).delete_all()
    assert [r.url.params["id"] for r in recorder.requests] == ["not.is.null", "not.is.null"]


@pytest.mark.parametrize("status,retryable", [(500, True), (429, True), (401, False)])
def test_http_errors_become_store_errors(status: int, retryable: bool) -> None:
    store = _store(Recorder(status=status))
    with pytest.raises(StoreError) as exc_info:
        store.upsert_documents([make_doc("d1")])
    err = exc_info.value
    assert err.details == {"backend": "rest", "is_retryable": retryable}
    assert str(status) in err.message


def test_transport_errors_are_retryable() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = RestDocumentStore(BASE, "k", client=httpx.Client(transport=httpx.MockTransport(refuse)))
    with pytest.raises(StoreError) as exc_info:
        store.fetch_all()
    assert exc_info.value.details["is_retryable"] is True


def test_get_document_store_selects_rest_backend() -> None:
    cfg = Config(store=StoreConfig(backend="rest", rest_url=BASE, rest_key="k"))
    store = get_document_store(cfg)
    assert isinstance(store, RestDocumentStore)
    assert store.enabled is True
