"""Splitting document text into overlapping passages for embedding.

Chunks are computed as character spans over the original text. Segment
boundaries fall after sentence-terminal punctuation (``.``, ``!``, ``?``)
and, when paragraphs are preserved, after blank lines. Segments are
accumulated greedily up to ``max_chunk_size``; each new chunk is seeded with
the tail of the previous one, trimmed to start at a sentence boundary when
the tail contains one.

Because every chunk is a slice of the input and each chunk after the first
starts inside its predecessor, dropping the overlaps and concatenating the
spans reproduces the text exactly.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.exceptions import ValidationError

Span = Tuple[int, int]

_SENTENCE_END = re.compile(r"[.!?]+(?:\s+|$)")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class ChunkingOptions:
    """Size limits for the chunker."""

    max_chunk_size: int = 2000
    overlap: int = 200
    min_chunk_size: int = 100
    preserve_paragraphs: bool = False

    def validate(self) -> None:
        if self.max_chunk_size < 1:
            raise ValidationError("max_chunk_size must be positive", "max_chunk_size")
        if self.overlap < 0:
            raise ValidationError("overlap cannot be negative", "overlap")
        if self.min_chunk_size < 1:
            raise ValidationError("min_chunk_size must be positive", "min_chunk_size")
        if self.segment_limit < 1:
            raise ValidationError(
                "max_chunk_size must exceed both overlap and min_chunk_size",
                "max_chunk_size",
            )

    @property
    def segment_limit(self) -> int:
        """Longest segment that still fits next to an overlap or a short chunk."""
        return self.max_chunk_size - max(self.overlap, self.min_chunk_size)


def chunk_text(text: str, options: Optional[ChunkingOptions] = None) -> List[str]:
    """Split text into ordered, overlapping chunks."""
    return [text[start:end].strip() for start, end in chunk_spans(text, options)]


def chunk_spans(text: str, options: Optional[ChunkingOptions] = None) -> List[Span]:
    """Compute ``(start, end)`` offsets of each chunk within ``text``."""
    options = options or ChunkingOptions()
    options.validate()

    if len(text.strip()) < options.min_chunk_size:
        return []

    segments = _split_oversized(
        text, _segment(text, options.preserve_paragraphs), options.segment_limit
    )

    spans: List[Span] = []
    chunk_start, chunk_end = segments[0][0], segments[0][0]
    for _, segment_end in segments:
        if segment_end - chunk_start > options.max_chunk_size and chunk_end > chunk_start:
            spans.append((chunk_start, chunk_end))
            chunk_start = _overlap_start(text, chunk_start, chunk_end, options.overlap)
        chunk_end = segment_end

    if chunk_end - chunk_start < options.min_chunk_size:
        # Widen a short remainder backwards instead of losing its text.
        chunk_start = max(0, chunk_end - options.min_chunk_size)
    spans.append((chunk_start, chunk_end))
    return spans


def _segment(text: str, preserve_paragraphs: bool) -> List[Span]:
    boundaries = {0, len(text)}
    boundaries.update(match.end() for match in _SENTENCE_END.finditer(text))
    if preserve_paragraphs:
        boundaries.update(match.end() for match in _PARAGRAPH_BREAK.finditer(text))

    ordered = sorted(boundaries)
    return [(start, end) for start, end in zip(ordered, ordered[1:]) if end > start]


def _split_oversized(text: str, segments: List[Span], limit: int) -> List[Span]:
    """Break segments longer than ``limit``, preferring whitespace."""
    result: List[Span] = []
    for start, end in segments:
        while end - start > limit:
            cut = start + limit
            window = text[start:cut]
            last_space = max(
                (match.start() for match in _WHITESPACE.finditer(window)), default=-1
            )
            if last_space > 0:
                cut = start + last_space + 1
            result.append((start, cut))
            start = cut
        result.append((start, end))
    return result


def _overlap_start(text: str, chunk_start: int, chunk_end: int, overlap: int) -> int:
    """Offset at which the next chunk begins."""
    if overlap <= 0:
        return chunk_end

    window_start = max(chunk_start, chunk_end - overlap)
    window = text[window_start:chunk_end].rstrip()
    boundaries = [
        match.end() for match in _SENTENCE_END.finditer(window) if match.end() < len(window)
    ]
    if boundaries:
        return window_start + boundaries[-1]
    return window_start
