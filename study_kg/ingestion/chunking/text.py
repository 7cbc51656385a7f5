"""
Plain Text Chunker

Splits extracted document text into bounded, context-preserving chunks.

Algorithm:
    1. Split on blank lines into paragraphs
    2. If the document is one unbroken block, force-split it on a character
       budget of max_tokens * 4, preferring sentence ends near the target
    3. Accumulate paragraphs into a buffer; when the next one would overflow
       the budget, emit the buffer and seed the next one with the trailing
       sentences of the emitted chunk (overlap)
    4. Paragraphs larger than the budget are force-split on their own

Every chunk records ``overlap_chars`` in its metadata: the length of the
seeded prefix, so ``content[overlap_chars:]`` is the chunk's own text and
concatenating those slices reconstructs the document (mod whitespace).

Example:
    >>> chunks = chunk_text(text, max_tokens_per_chunk=800, overlap_tokens=100)
    >>> [c.order for c in chunks]
    [0, 1, 2]
"""

from __future__ import annotations

import logging
import re

from study_kg.types.chunks import DocumentSource, RawChunk
from study_kg.utils.text import split_sentences
from study_kg.utils.token_count import CHARS_PER_TOKEN, estimate_tokens

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1200
DEFAULT_OVERLAP_TOKENS = 150
OVERSIZE_TOLERANCE = 1.2
"""Chunks seeded with overlap may exceed the budget by at most this factor"""

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SECTION_SEPARATOR = "\n\n"

# Break preferences for force splitting, tried in order
_BREAK_GROUPS = (".!?", "\n", " ")

# Noise lines dropped by preprocess_text
_PAGE_NUMBER_LINE = re.compile(
    r"^\s*(?:page\s+)?[-–—]?\s*\d{1,4}\s*[-–—]?(?:\s*(?:of|/)\s*\d{1,4})?\s*$",
    re.IGNORECASE,
)
_TOC_LINE = re.compile(r"^.{1,120}?(?:\s*\.{4,}|\s*(?:\.\s){4,})\s*\d{1,4}\s*$")
_EXCESS_BLANK_LINES = re.compile(r"\n\s*\n(?:\s*\n)+")


def preprocess_text(text: str) -> str:
    """
    Drop page-number and table-of-contents lines and squeeze blank runs.

    Lines like "12", "Page 3", "- 7 -", "4 of 20" and dot-leader TOC entries
    ("Introduction ........ 3") are removed.
    """
    kept = [
        line
        for line in text.splitlines()
        if not _PAGE_NUMBER_LINE.match(line) and not _TOC_LINE.match(line)
    ]
    return _EXCESS_BLANK_LINES.sub("\n\n", "\n".join(kept)).strip()


def chunk_text(
    text: str,
    *,
    max_tokens_per_chunk: int = DEFAULT_MAX_TOKENS,
    overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
    source: DocumentSource | None = None,
) -> list[RawChunk]:
    """
    Split text into ordered raw chunks.

    Never raises on bad input: empty or whitespace-only text, non-string
    input, and a non-positive budget all yield an empty list.

    Args:
        text: Extracted document text
        max_tokens_per_chunk: Budget per chunk in estimated tokens
        overlap_tokens: Budget for trailing sentences carried forward
        source: Source metadata copied into each chunk's metadata

    Returns:
        RawChunks with ``order`` 0..n-1 in document order
    """
    if not isinstance(text, str) or not text.strip():
        return []
    if max_tokens_per_chunk < 1:
        logger.warning(f"Invalid max_tokens_per_chunk={max_tokens_per_chunk}; no chunks produced")
        return []

    max_tokens = max_tokens_per_chunk
    overlap_budget = max(0, overlap_tokens)
    ceiling = int(max_tokens * OVERSIZE_TOLERANCE)
    base_metadata = _base_metadata(source)

    logger.debug(
        f"Chunking {len(text)} chars (~{estimate_tokens(text)} tokens), "
        f"target {max_tokens} tokens with {overlap_budget} overlap"
    )

    sections = _split_paragraphs(text)
    if len(sections) <= 1 and estimate_tokens(text) > max_tokens:
        logger.debug("Single unbroken block, force splitting")
        sections = _force_split(text.strip(), max_tokens)

    chunks: list[RawChunk] = []
    current = ""
    current_overlap = 0

    def emit(content: str, overlap_chars: int) -> None:
        chunks.append(
            RawChunk(
                content=content,
                order=len(chunks),
                metadata={**base_metadata, "overlap_chars": overlap_chars},
            )
        )

    for section in sections:
        section_tokens = estimate_tokens(section)

        if section_tokens > max_tokens:
            if current:
                emit(current, current_overlap)
                current, current_overlap = "", 0
            for piece in _force_split(section, max_tokens):
                emit(piece, 0)
            continue

        if not current:
            current, current_overlap = section, 0
            continue

        candidate = current + _SECTION_SEPARATOR + section
        if estimate_tokens(candidate) <= max_tokens:
            current = candidate
            continue

        emit(current, current_overlap)
        budget = min(overlap_budget, ceiling - section_tokens - 1)
        overlap = last_sentences(current, budget) if budget > 0 else ""
        if overlap:
            current = overlap + _SECTION_SEPARATOR + section
            current_overlap = len(overlap) + len(_SECTION_SEPARATOR)
        else:
            current, current_overlap = section, 0

    if current:
        emit(current, current_overlap)

    logger.debug(
        f"Created {len(chunks)} chunks, sizes: "
        f"{', '.join(str(estimate_tokens(c.content)) for c in chunks)} tokens"
    )
    return chunks


def own_text(chunk: RawChunk) -> str:
    """The part of a chunk that is not overlap carried from its predecessor."""
    return chunk.content[chunk.metadata.get("overlap_chars", 0):]


def last_sentences(text: str, max_tokens: int) -> str:
    """
    Collect trailing sentences of ``text`` that fit within ``max_tokens``.

    Sentences are rejoined with ". " in their original order.
    """
    result = ""
    for sentence in reversed(split_sentences(text)):
        candidate = f"{sentence}. {result}".strip()
        if estimate_tokens(candidate) > max_tokens:
            break
        result = candidate
    return result


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def _base_metadata(source: DocumentSource | None) -> dict[str, str]:
    if source is None:
        return {}
    return {"source_type": source.source_type, "file_name": source.file_name}


def _split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, keeping every non-empty paragraph."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def _force_split(text: str, max_tokens: int) -> list[str]:
    """
    Split text into pieces of at most ``max_tokens * 4`` characters.

    Each cut moves back to the nearest sentence end (then newline, then
    space) as long as that keeps the piece over half the target length.
    """
    max_chars = max(1, max_tokens * CHARS_PER_TOKEN)
    pieces: list[str] = []
    start = 0

    while start < len(text):
        end = min(start + max_chars, len(text))
        if end < len(text):
            end = _find_break(text, start, end, max_chars)
        piece = text[start:end].strip()
        if piece:
            pieces.append(piece)
        start = end

    return pieces


def _find_break(text: str, start: int, end: int, max_chars: int) -> int:
    """Return the preferred cut position in (start + max_chars/2, end]."""
    floor = start + max_chars // 2
    for group in _BREAK_GROUPS:
        position = max(text.rfind(ch, start, end) for ch in group)
        if position > floor:
            return position + 1
    return end
