"""Chunking utilities for breaking page text into index-friendly units."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from riskagent.errors import InvalidArgumentError

LOGGER = logging.getLogger(__name__)

# Paragraphs, lines, sentences, words. An empty separator means raw characters.
DEFAULT_SEPARATORS: Tuple[str, ...] = ("\n\n", "\n", ". ", "? ", "! ", " ", "")

Span = Tuple[int, int]


@dataclass(slots=True, frozen=True)
class ChunkingStats:
    """Aggregate chunk counts across the pages of one document."""

    page_count: int
    chunks_per_page: Tuple[int, ...]
    avg_chunks_per_page: float
    min_chunks_in_page: int
    max_chunks_in_page: int

    @classmethod
    def empty(cls) -> "ChunkingStats":
        return cls(0, (), 0.0, 0, 0)

    @classmethod
    def from_counts(cls, counts: Sequence[int]) -> "ChunkingStats":
        if not counts:
            return cls.empty()
        return cls(
            page_count=len(counts),
            chunks_per_page=tuple(counts),
            avg_chunks_per_page=sum(counts) / len(counts),
            min_chunks_in_page=min(counts),
            max_chunks_in_page=max(counts),
        )

    @property
    def total_chunks(self) -> int:
        return sum(self.chunks_per_page)


def validate_chunk_parameters(chunk_size: int, overlap_size: int) -> None:
    if chunk_size <= 0:
        raise InvalidArgumentError("Chunk size must be greater than 0", argument="chunk_size")
    if overlap_size < 0:
        raise InvalidArgumentError("Overlap size cannot be negative", argument="overlap_size")
    if overlap_size >= chunk_size:
        raise InvalidArgumentError("Overlap size must be less than chunk size", argument="overlap_size")


class TextChunker(ABC):
    """Split text into chunks of roughly ``chunk_size`` characters with overlap."""

    name: str = "base"

    @abstractmethod
    def chunk_text(self, text: Optional[str], chunk_size: int, overlap_size: int) -> List[str]:
        """Return the chunks of ``text`` in document order."""

    def chunk_pages(
        self,
        pages: Optional[Sequence[str]],
        chunk_size: int,
        overlap_size: int,
    ) -> ChunkingStats:
        """Chunk every page independently and aggregate the per-page counts."""

        if not pages:
            return ChunkingStats.empty()
        counts = [len(self.chunk_text(page, chunk_size, overlap_size)) for page in pages]
        stats = ChunkingStats.from_counts(counts)
        LOGGER.debug(
            "Chunked %s pages into %s chunks using %s strategy",
            stats.page_count,
            stats.total_chunks,
            self.name,
        )
        return stats


class RecursiveTextChunker(TextChunker):
    """Split text respecting paragraph, sentence and word boundaries.

    Text is cut at the coarsest separator that yields pieces no longer than
    ``chunk_size``; oversized pieces are re-split with the next separator and
    raw character slicing is the last resort. Separators stay attached to the
    piece before them, so every chunk is an exact substring of the input and
    the chunks, minus their overlaps, concatenate back to the original text.
    """

    name = "recursive"

    def __init__(self, separators: Sequence[str] = DEFAULT_SEPARATORS) -> None:
        self.separators = tuple(separators)

    def chunk_text(self, text: Optional[str], chunk_size: int, overlap_size: int) -> List[str]:
        if not text:
            return []
        validate_chunk_parameters(chunk_size, overlap_size)
        return [text[start:end] for start, end in self.chunk_spans(text, chunk_size, overlap_size)]

    def chunk_spans(self, text: str, chunk_size: int, overlap_size: int) -> List[Span]:
        """Return ``(start, end)`` offsets of each chunk within ``text``."""

        pieces = self._split(text, 0, len(text), self.separators, chunk_size)
        return self._merge(pieces, chunk_size, overlap_size)

    def _split(
        self,
        text: str,
        start: int,
        end: int,
        separators: Sequence[str],
        chunk_size: int,
    ) -> List[Span]:
        if end - start <= chunk_size:
            return [(start, end)]

        separator, remaining = self._pick_separator(text, start, end, separators)
        if not separator:
            return [(offset, min(offset + chunk_size, end)) for offset in range(start, end, chunk_size)]

        pieces: List[Span] = []
        for piece_start, piece_end in self._split_on(text, start, end, separator):
            if piece_end - piece_start > chunk_size:
                pieces.extend(self._split(text, piece_start, piece_end, remaining, chunk_size))
            else:
                pieces.append((piece_start, piece_end))
        return pieces

    @staticmethod
    def _pick_separator(
        text: str,
        start: int,
        end: int,
        separators: Sequence[str],
    ) -> Tuple[str, Sequence[str]]:
        for index, separator in enumerate(separators):
            if not separator:
                return "", ()
            position = text.find(separator, start, end)
            # a separator only at the very end cannot split the span
            if position != -1 and position + len(separator) < end:
                return separator, separators[index + 1 :]
        return "", ()

    @staticmethod
    def _split_on(text: str, start: int, end: int, separator: str) -> List[Span]:
        spans: List[Span] = []
        cursor = start
        while cursor < end:
            position = text.find(separator, cursor, end)
            if position == -1:
                spans.append((cursor, end))
                break
            piece_end = position + len(separator)
            spans.append((cursor, piece_end))
            cursor = piece_end
        return spans

    @staticmethod
    def _merge(pieces: Sequence[Span], chunk_size: int, overlap_size: int) -> List[Span]:
        chunks: List[Span] = []
        window: List[Span] = []
        window_length = 0

        for piece in pieces:
            piece_length = piece[1] - piece[0]
            if window and window_length + piece_length > chunk_size:
                chunks.append((window[0][0], window[-1][1]))
                # keep a tail of whole pieces as overlap, leaving room for the new piece
                while window and (
                    window_length > overlap_size or window_length + piece_length > chunk_size
                ):
                    window_length -= window[0][1] - window[0][0]
                    window.pop(0)
            window.append(piece)
            window_length += piece_length

        if window:
            last = (window[0][0], window[-1][1])
            if not chunks or last[1] > chunks[-1][1]:
                chunks.append(last)
        return chunks


class LegacyTextChunker(TextChunker):
    """Fixed-stride character window kept for backward compatibility."""

    name = "legacy"

    def chunk_text(self, text: Optional[str], chunk_size: int, overlap_size: int) -> List[str]:
        if text is None or not text.strip():
            return []
        validate_chunk_parameters(chunk_size, overlap_size)

        chunks: List[str] = []
        step = chunk_size - overlap_size
        for start in range(0, len(text), step):
            chunk = text[start : start + chunk_size]
            chunks.append(chunk)
            if len(chunk) < chunk_size:
                break
        return chunks


_CHUNKERS = {
    RecursiveTextChunker.name: RecursiveTextChunker,
    LegacyTextChunker.name: LegacyTextChunker,
}


def create_chunker(strategy: str = RecursiveTextChunker.name) -> TextChunker:
    """Instantiate the chunking strategy registered under ``strategy``."""

    try:
        return _CHUNKERS[strategy.strip().lower()]()
    except KeyError as exc:
        raise InvalidArgumentError(
            f"Unknown chunking strategy: {strategy}", argument="strategy"
        ) from exc
