"""Tests for shadowindex.ingest.chunking."""

import pytest

from shadowindex.ingest.chunking import split_text_into_chunks
from shadowindex.utils.exceptions import ValidationError


def _assert_well_formed(text: str, chunks, chunk_size: int) -> None:
    assert chunks[0].start_index == 0
    assert chunks[-1].end_index == len(text)
    for c in chunks:
        assert c.content == text[c.start_index : c.end_index]
        assert 0 < len(c.content) <= chunk_size
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.start_index > prev.start_index
        # no gaps: the next chunk starts inside or at the end of the previous one
        assert nxt.start_index <= prev.end_index


def test_empty_text_yields_no_chunks() -> None:
    assert split_text_into_chunks("", "d") == []


def test_short_text_is_single_chunk() -> None:
    chunks = split_text_into_chunks("hello world", "d")
    assert len(chunks) == 1
    assert chunks[0].content == "hello world"
    assert (chunks[0].start_index, chunks[0].end_index) == (0, 11)


def test_text_exactly_chunk_size_is_single_chunk() -> None:
    text = "x" * 1000
    chunks = split_text_into_chunks(text, "d")
    assert len(chunks) == 1
    assert chunks[0].end_index == 1000


def test_ids_are_document_id_and_ordinal() -> None:
    chunks = split_text_into_chunks("a" * 25, "doc", chunk_size=10, overlap=0)
    assert [c.id for c in chunks] == ["doc_0", "doc_1", "doc_2"]
    assert all(c.document_id == "doc" for c in chunks)


def test_hard_cut_without_separators() -> None:
    chunks = split_text_into_chunks("a" * 25, "d", chunk_size=10, overlap=0)
    assert [(c.start_index, c.end_index) for c in chunks] == [(0, 10), (10, 20), (20, 25)]


def test_snaps_to_newline_past_midpoint() -> None:
    text = "a" * 700 + "\n" + "b" * 700
    chunks = split_text_into_chunks(text, "d", chunk_size=1000, overlap=200)
    assert chunks[0].end_index == 701
    assert chunks[0].content.endswith("\n")
    assert chunks[1].start_index == 501
    assert chunks[1].end_index == len(text)
    _assert_well_formed(text, chunks, 1000)


def test_newline_preferred_over_later_space() -> None:
    text = "a" * 600 + "\n" + "b" * 200 + " " + "c" * 600
    chunks = split_text_into_chunks(text, "d", chunk_size=1000, overlap=0)
    assert chunks[0].end_index == 601


def test_falls_back_to_space_when_no_newline() -> None:
    text = "a" * 800 + " " + "b" * 800
    chunks = split_text_into_chunks(text, "d", chunk_size=1000, overlap=0)
    assert chunks[0].end_index == 801
    assert chunks[1].start_index == 801


def test_separator_before_midpoint_is_ignored() -> None:
    text = "a" * 100 + " " + "a" * 1500
    chunks = split_text_into_chunks(text, "d", chunk_size=1000, overlap=0)
    assert chunks[0].end_index == 1000


def test_overlap_repeats_tail_of_previous_chunk() -> None:
    text = "x" * 30
    chunks = split_text_into_chunks(text, "d", chunk_size=10, overlap=4)
    assert chunks[1].start_index == 6
    assert text[chunks[1].start_index : chunks[0].end_index] == "xxxx"
    _assert_well_formed(text, chunks, 10)


def test_overlap_not_smaller_than_chunk_size_still_terminates() -> None:
    text = "x" * 50
    chunks = split_text_into_chunks(text, "d", chunk_size=10, overlap=20)
    assert [c.start_index for c in chunks] == list(range(41))
    _assert_well_formed(text, chunks, 10)


def test_realistic_prose_is_well_formed() -> None:
    paragraph = "The quick brown fox jumps over the lazy dog.\n" * 80
    chunks = split_text_into_chunks(paragraph, "d", chunk_size=300, overlap=50)
    assert len(chunks) > 1
    _assert_well_formed(paragraph, chunks, 300)
    for c in chunks[:-1]:
        assert c.content.endswith("\n")


@pytest.mark.parametrize("chunk_size,overlap,field", [(0, 0, "chunk_size"), (10, -1, "overlap")])
def test_invalid_arguments_raise_validation_error(chunk_size, overlap, field) -> None:
    with pytest.raises(ValidationError) as exc_info:
        split_text_into_chunks("abc", "d", chunk_size=chunk_size, overlap=overlap)
    assert exc_info.value.details == {"field": field}
