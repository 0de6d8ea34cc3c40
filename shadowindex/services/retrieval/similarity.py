"""Cosine similarity and brute-force top-K ranking over embedded chunks."""

from __future__ import annotations

import math
from collections.abc import Sequence

from shadowindex.ingest.models import EmbeddedChunk, SearchResult

# Score for vectors of different length (e.g. chunks embedded by a previous model).
DIMENSION_MISMATCH_SCORE = -1.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of a and b; DIMENSION_MISMATCH_SCORE if lengths differ, 0.0 if either is a zero vector."""
    if len(a) != len(b):
        return DIMENSION_MISMATCH_SCORE
    dot = 0.0
    na = 0.0
    nb = 0.0
    for x, y in zip(a, b):
        dot += x * y
        na += x * x
        nb += y * y
    if na == 0 or nb == 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


def find_most_relevant_chunks(
    query_embedding: Sequence[float],
    chunks: Sequence[EmbeddedChunk],
    top_k: int = 10,
) -> list[SearchResult]:
    """
    Score every chunk against the query and return the top_k best, highest first.

    Linear scan; sorting is stable so equal scores keep their input order.
    Chunks with a mismatched dimension stay in the candidate set with score -1.
    """
    if top_k <= 0:
        return []
    scored = [
        SearchResult(
            id=c.id,
            document_id=c.document_id,
            content=c.content,
            start_index=c.start_index,
            end_index=c.end_index,
            embedding=c.embedding,
            score=cosine_similarity(query_embedding, c.embedding),
        )
        for c in chunks
    ]
    scored.sort(key=lambda r: r.score, reverse=True)
    return scored[:top_k]
