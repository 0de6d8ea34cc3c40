"""Pytest hooks and fixtures."""

import asyncio
from collections.abc import Sequence

import pytest

from shadowindex.ingest.models import Document, DocumentStatus


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line("markers", "slow: tests that wait on real timers")


class KeywordProvider:
    """Deterministic embedder: one dimension per keyword, plus a constant bias dimension."""

    def __init__(self, keywords: Sequence[str] = ("apple", "banana", "cherry")):
        self.keywords = list(keywords)
        self.calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [1.0 if k in lowered else 0.0 for k in self.keywords] + [0.1]

    def embed(self, texts):
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    async def aembed(self, texts):
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]


def make_doc(doc_id: str, content: str = "", **kwargs) -> Document:
    kwargs.setdefault("name", f"{doc_id}.txt")
    kwargs.setdefault("status", DocumentStatus.READY)
    return Document(id=doc_id, content=content, **kwargs)


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll predicate on the running loop; fail the test if it stays false past timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def keyword_provider() -> KeywordProvider:
    return KeywordProvider()
