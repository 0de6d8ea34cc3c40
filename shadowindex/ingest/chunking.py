"""Split document text into overlapping chunks, snapping to line or word boundaries."""

from shadowindex.ingest.models import Chunk
from shadowindex.utils.exceptions import ValidationError

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 200
# A snap point must lie past this fraction of the chunk, otherwise cut hard.
MIN_SNAP_RATIO = 0.5


def _snap_end(text: str, start: int, end: int, chunk_size: int) -> int:
    """Move end back to just after the last newline (else space) in text[start:end]."""
    floor = start + chunk_size * MIN_SNAP_RATIO
    for sep in ("\n", " "):
        last = text.rfind(sep, start, end)
        if last > floor:
            return last + 1
    return end


def split_text_into_chunks(
    text: str,
    document_id: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """
    Split text into chunks of at most chunk_size characters.

    Consecutive chunks overlap by up to `overlap` characters. The next chunk always
    starts at least one character after the previous one, so the loop terminates
    even when overlap >= chunk_size. Chunk ids are "{document_id}_{ordinal}".
    """
    if chunk_size < 1:
        raise ValidationError("chunk_size must be >= 1", field="chunk_size")
    if overlap < 0:
        raise ValidationError("overlap must be >= 0", field="overlap")

    chunks: list[Chunk] = []
    start = 0
    length = len(text or "")
    while start < length:
        end = start + chunk_size
        if end < length:
            end = _snap_end(text, start, end, chunk_size)
        else:
            end = length
        chunks.append(
            Chunk(
                id=f"{document_id}_{len(chunks)}",
                document_id=document_id,
                content=text[start:end],
                start_index=start,
                end_index=end,
            )
        )
        if end == length:
            break
        start = max(start + 1, end - overlap)
    return chunks
