"""Embedding provider using LiteLLM (Gemini, OpenAI-compatible and others)."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

# Use the bundled model cost map; avoids a remote fetch on first import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import litellm
from loguru import logger

from shadowindex.utils.exceptions import EmbeddingError, classify_exception, sanitize_error_message

DEFAULT_BATCH_SIZE = 100

Vector = list[float]


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns texts into vectors. Results are positionally aligned; a slot may be None."""

    def embed(self, texts: Sequence[str]) -> list[Vector | None]: ...

    async def aembed(self, texts: Sequence[str]) -> list[Vector | None]: ...


def _item_embedding(item: Any) -> Vector | None:
    if isinstance(item, dict):
        vec = item.get("embedding")
    else:
        vec = getattr(item, "embedding", None)
    return list(vec) if vec else None


def _item_index(item: Any, fallback: int) -> int:
    idx = item.get("index") if isinstance(item, dict) else getattr(item, "index", None)
    return idx if isinstance(idx, int) else fallback


def _align(response: Any, size: int) -> list[Vector | None]:
    """Place each returned vector at its input index; unfilled slots stay None."""
    out: list[Vector | None] = [None] * size
    data = getattr(response, "data", None)
    if data is None and isinstance(response, dict):
        data = response.get("data")
    for pos, item in enumerate(data or []):
        idx = _item_index(item, pos)
        if 0 <= idx < size:
            out[idx] = _item_embedding(item)
    return out


class LiteLLMEmbeddingProvider:
    """Embed texts via LiteLLM in batches of at most batch_size inputs per request."""

    def __init__(
        self,
        model: str,
        provider: str = "gemini",
        api_key: str | None = None,
        api_base: str | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.model = model
        self.provider = (provider or "").strip().lower()
        self._api_key = (api_key or "").strip() or None
        self._api_base = (api_base or "").strip() or None
        self.batch_size = max(1, batch_size)

    @property
    def model_name(self) -> str:
        """LiteLLM model format: gemini/text-embedding-004, or the model as given if already prefixed."""
        if self.provider and "/" not in self.model:
            return f"{self.provider}/{self.model}"
        return self.model

    def _kwargs(self, batch: list[str]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self.model_name, "input": batch}
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._api_base:
            kwargs["api_base"] = self._api_base
        return kwargs

    def _batches(self, texts: Sequence[str]) -> list[list[str]]:
        items = list(texts)
        return [items[i : i + self.batch_size] for i in range(0, len(items), self.batch_size)]

    def _wrap_error(self, exc: Exception) -> EmbeddingError:
        _, _, retryable = classify_exception(exc)
        message = sanitize_error_message(str(exc).split("\n")[0])
        logger.warning(f"Embedding failed ({self.model_name}): {message}")
        return EmbeddingError(
            f"Embedding request failed: {message}",
            provider=self.provider,
            model=self.model,
            is_retryable=retryable,
        )

    def embed(self, texts: Sequence[str]) -> list[Vector | None]:
        """Sync embed. Empty input returns []. Raises EmbeddingError on provider failure."""
        out: list[Vector | None] = []
        for batch in self._batches(texts):
            try:
                response = litellm.embedding(**self._kwargs(batch))
            except Exception as e:
                raise self._wrap_error(e) from e
            out.extend(_align(response, len(batch)))
        return out

    async def aembed(self, texts: Sequence[str]) -> list[Vector | None]:
        """Async embed. Empty input returns []. Raises EmbeddingError on provider failure."""
        out: list[Vector | None] = []
        for batch in self._batches(texts):
            try:
                response = await litellm.aembedding(**self._kwargs(batch))
            except Exception as e:
                raise self._wrap_error(e) from e
            out.extend(_align(response, len(batch)))
        return out


def get_embedding_provider(config: Any) -> LiteLLMEmbeddingProvider | None:
    """Return the configured embedding provider, or None if no model is configured."""
    if config is None:
        return None
    embedding = getattr(config, "embedding", None)
    if embedding is None:
        return None
    model = (getattr(embedding, "model", "") or "").strip()
    if not model:
        return None
    return LiteLLMEmbeddingProvider(
        model=model,
        provider=getattr(embedding, "provider", "") or "",
        api_key=getattr(embedding, "api_key", "") or None,
        api_base=getattr(embedding, "api_base", None),
        batch_size=getattr(embedding, "batch_size", DEFAULT_BATCH_SIZE) or DEFAULT_BATCH_SIZE,
    )
