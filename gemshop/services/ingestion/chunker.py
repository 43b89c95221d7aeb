"""Fixed-size character windows with overlap.

Splits extracted document text into overlapping windows sized for the
embedding model.  Each window is ``chunk_size`` characters long and the
window start advances by ``chunk_size - overlap``, so consecutive chunks
share ``overlap`` characters of context: a sentence cut by one boundary is
whole in the neighbouring chunk.

Whitespace is normalized first (every run of whitespace becomes a single
space) so that PDF line wraps and CSV blank lines do not eat into the
character budget.
"""

from __future__ import annotations

import math
import re

import structlog

from gemshop.config.loader import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE

logger = structlog.get_logger(logger_name=__name__)

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to one space and strip both ends."""
    return _WHITESPACE_RUN.sub(" ", text).strip()


def expected_chunk_count(length: int, chunk_size: int, overlap: int) -> int:
    """Number of windows :class:`TextChunker` produces for *length* characters."""
    if length <= 0:
        return 0
    if length <= overlap:
        return 1
    return math.ceil((length - overlap) / (chunk_size - overlap))


class TextChunker:
    """Splits text into overlapping fixed-size character windows.

    Parameters
    ----------
    chunk_size:
        Window length in characters (default 1500).
    overlap:
        Characters shared by consecutive windows (default 200).  Must be
        smaller than *chunk_size*.

    Raises
    ------
    ValueError
        If ``chunk_size <= 0`` or ``overlap`` is outside ``[0, chunk_size)``.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(
                f"overlap must be in [0, chunk_size), got overlap={overlap} "
                f"chunk_size={chunk_size}"
            )
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    def chunk(self, text: str) -> list[str]:
        """Split *text* into windows, left to right.

        Returns an empty list for empty or whitespace-only input.  The list
        position of each window is its chunk index.
        """
        cleaned = normalize_whitespace(text)
        if not cleaned:
            return []

        step = self._chunk_size - self._overlap
        chunks: list[str] = []
        start = 0
        while True:
            end = min(start + self._chunk_size, len(cleaned))
            chunks.append(cleaned[start:end])
            if end >= len(cleaned):
                break
            start += step

        logger.debug(
            "text_chunked",
            characters=len(cleaned),
            chunks=len(chunks),
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return chunks


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Convenience wrapper around :meth:`TextChunker.chunk`."""
    return TextChunker(chunk_size=chunk_size, overlap=overlap).chunk(text)
