"""Cloud store over a PostgREST (Supabase-style) REST API: tables `documents` and `embeddings`."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from shadowindex.ingest.models import Document, DocumentStatus, EmbeddedChunk, IndexingStatus
from shadowindex.storage.base import StoreSnapshot
from shadowindex.utils.exceptions import StoreError, sanitize_error_message

_UPSERT_PREFER = "resolution=merge-duplicates,return=minimal"


def _document_row(doc: Document) -> dict[str, Any]:
    return {
        "id": doc.id,
        "name": doc.name,
        "type": doc.type,
        "size": doc.size,
        "content": doc.content,
        "path": doc.path,
        "module_name": doc.module_name,
        "status": DocumentStatus.READY.value,
    }


def _embedding_row(chunk: EmbeddedChunk) -> dict[str, Any]:
    return {
        "id": chunk.id,
        "document_id": chunk.document_id,
        "content": chunk.content,
        "embedding": list(chunk.embedding),
        "start_index": chunk.start_index,
        "end_index": chunk.end_index,
    }


def _parse_vector(value: Any) -> list[float]:
    """pgvector columns come back as a string like "[0.1,0.2]"; JSON arrays as lists."""
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    return [float(x) for x in (value or [])]


class RestDocumentStore:
    """
    Shared cloud copy of documents and embeddings.

    When url or key is missing the store is disabled: writes are no-ops and
    fetch_all() returns an empty snapshot.
    """

    name = "rest"

    def __init__(
        self,
        url: str,
        key: str,
        *,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ):
        self.url = (url or "").rstrip("/")
        self._key = (key or "").strip()
        self._timeout = timeout
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.url and self._key)

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self.url}/rest/v1/{table}"
        try:
            if self._client is not None:
                response = self._client.request(
                    method, url, params=params, json=body, headers=self._headers(prefer), timeout=self._timeout
                )
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.request(method, url, params=params, json=body, headers=self._headers(prefer))
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise StoreError(
                self.name,
                f"{method} {table} returned {status}: {sanitize_error_message(e.response.text[:300])}",
                is_retryable=status >= 500 or status == 429,
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(self.name, f"{method} {table} failed: {e}", is_retryable=True) from e

    def upsert_documents(self, documents: Sequence[Document]) -> None:
        if not self.enabled or not documents:
            return
        self._request("POST", "documents", body=[_document_row(d) for d in documents], prefer=_UPSERT_PREFER)

    def upsert_embeddings(self, chunks: Sequence[EmbeddedChunk]) -> None:
        if not self.enabled or not chunks:
            return
        self._request("POST", "embeddings", body=[_embedding_row(c) for c in chunks], prefer=_UPSERT_PREFER)
        logger.debug(f"Synced {len(chunks)} embeddings to {self.url}")

    def fetch_all(self) -> StoreSnapshot:
        if not self.enabled:
            return StoreSnapshot()
        doc_rows = self._request("GET", "documents", params={"select": "*"}).json() or []
        chunk_rows = self._request("GET", "embeddings", params={"select": "*"}).json() or []
        documents = [
            Document(
                id=str(r["id"]),
                name=r.get("name") or "",
                content=r.get("content") or "",
                type=r.get("type") or "text/plain",
                size=int(r.get("size") or 0),
                path=r.get("path") or "",
                module_name=r.get("module_name") or "General",
                status=DocumentStatus.READY,
                indexing_status=IndexingStatus.COMPLETED,
                is_selected=True,
            )
            for r in doc_rows
        ]
        embeddings = [
            EmbeddedChunk(
                id=str(r["id"]),
                document_id=str(r["document_id"]),
                content=r.get("content") or "",
                start_index=int(r.get("start_index") or 0),
                end_index=int(r.get("end_index") or 0),
                embedding=_parse_vector(r.get("embedding")),
            )
            for r in chunk_rows
        ]
        return StoreSnapshot(documents=documents, embeddings=embeddings)

    def delete_document(self, document_id: str) -> None:
        """Chunks first, then the document, so a partial failure never leaves orphan chunks."""
        if not self.enabled:
            return
        self._request("DELETE", "embeddings", params={"document_id": f"eq.{document_id}"})
        self._request("DELETE", "documents", params={"id": f"eq.{document_id}"})

    def delete_all(self) -> None:
        if not self.enabled:
            return
        self._request("DELETE", "embeddings", params={"id": "not.is.null"})
        self._request("DELETE", "documents", params={"id": "not.is.null"})
