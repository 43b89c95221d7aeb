"""Unit tests for TextChunker: fixed-size character windows with overlap."""

from __future__ import annotations

import pytest

from gemshop.services.ingestion.chunker import (
    TextChunker,
    chunk_text,
    expected_chunk_count,
    normalize_whitespace,
)


def _make_chunker(chunk_size: int = 1500, overlap: int = 200) -> TextChunker:
    return TextChunker(chunk_size=chunk_size, overlap=overlap)


class TestChunkBoundaries:
    def test_3000_chars_gives_three_chunks(self) -> None:
        text = "a" * 3000
        chunks = _make_chunker().chunk(text)

        assert [len(c) for c in chunks] == [1500, 1500, 400]

    def test_windows_overlap_by_configured_amount(self) -> None:
        text = "".join(chr(ord("a") + i % 26) for i in range(3000))
        chunks = _make_chunker().chunk(text)

        assert chunks[0][-200:] == chunks[1][:200]
        assert chunks[1][-200:] == chunks[2][:200]

    def test_chunks_cover_the_whole_text(self) -> None:
        text = "".join(str(i % 10) for i in range(4321))
        chunker = _make_chunker(chunk_size=500, overlap=100)
        chunks = chunker.chunk(text)

        rebuilt = chunks[0] + "".join(c[100:] for c in chunks[1:])
        assert rebuilt == text

    @pytest.mark.parametrize(
        ("length", "chunk_size", "overlap"),
        [
            (3000, 1500, 200),
            (1500, 1500, 200),
            (1501, 1500, 200),
            (2800, 1500, 200),
            (2801, 1500, 200),
            (150, 1500, 200),
            (1000, 100, 0),
            (999, 100, 99),
        ],
    )
    def test_chunk_count_matches_formula(self, length: int, chunk_size: int, overlap: int) -> None:
        chunks = _make_chunker(chunk_size, overlap).chunk("x" * length)

        assert len(chunks) == expected_chunk_count(length, chunk_size, overlap)

    def test_text_shorter_than_overlap_is_one_chunk(self) -> None:
        assert _make_chunker().chunk("short text") == ["short text"]

    def test_chunks_never_exceed_chunk_size(self) -> None:
        chunks = _make_chunker(chunk_size=64, overlap=16).chunk("word " * 500)
        assert all(len(c) <= 64 for c in chunks)


class TestWhitespace:
    def test_whitespace_runs_collapse(self) -> None:
        assert normalize_whitespace("  a\n\n b\t\tc  ") == "a b c"

    def test_chunks_are_built_from_normalized_text(self) -> None:
        chunks = _make_chunker().chunk("Hello,\n\n\tworld!  ")
        assert chunks == ["Hello, world!"]

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_empty_input_yields_no_chunks(self, text: str) -> None:
        assert _make_chunker().chunk(text) == []


class TestPreconditions:
    def test_overlap_equal_to_chunk_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="overlap"):
            TextChunker(chunk_size=100, overlap=100)

    def test_overlap_larger_than_chunk_size_rejected(self) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, overlap=150)

    def test_negative_overlap_rejected(self) -> None:
        with pytest.raises(ValueError):
            TextChunker(chunk_size=100, overlap=-1)

    def test_non_positive_chunk_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            TextChunker(chunk_size=0, overlap=0)


class TestChunkTextHelper:
    def test_defaults(self) -> None:
        assert [len(c) for c in chunk_text("b" * 3000)] == [1500, 1500, 400]

    def test_custom_sizes(self) -> None:
        assert chunk_text("abcdefghij", chunk_size=4, overlap=1) == ["abcd", "defg", "ghij"]
