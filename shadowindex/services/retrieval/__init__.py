"""Retrieval: embedding provider and vector similarity ranking."""

from shadowindex.services.retrieval.embedding_provider import (
    EmbeddingProvider,
    LiteLLMEmbeddingProvider,
    get_embedding_provider,
)
from shadowindex.services.retrieval.similarity import (
    DIMENSION_MISMATCH_SCORE,
    cosine_similarity,
    find_most_relevant_chunks,
)

__all__ = [
    "DIMENSION_MISMATCH_SCORE",
    "EmbeddingProvider",
    "LiteLLMEmbeddingProvider",
    "cosine_similarity",
    "find_most_relevant_chunks",
    "get_embedding_provider",
]
