"""
Chunk Metadata Refinement

Once the final chunk count is known, page ranges (paged sources) and time
ranges (media sources) are spread evenly across the chunks.
"""

from __future__ import annotations

import math

from study_kg.types.chunks import DocumentSource, StructuredChunk

_PAGED_SOURCES = {"pdf", "docx"}
_TIMED_SOURCES = {"youtube", "audio"}


def parse_duration(duration: str | None) -> int:
    """
    Parse "m:ss" or "h:mm:ss" into seconds; 0 if unparseable.

    >>> parse_duration("1:30:45")
    5445
    """
    if not duration:
        return 0
    try:
        parts = [int(p) for p in duration.strip().split(":")]
    except ValueError:
        return 0
    if any(p < 0 for p in parts):
        return 0
    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    return 0


def format_time(seconds: int) -> str:
    """
    Format seconds as "m:ss", or "h:mm:ss" from one hour up.

    >>> format_time(3725)
    '1:02:05'
    """
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def page_range(index: int, total_chunks: int, total_pages: int) -> str:
    """Evenly spread page range for chunk ``index``, always at least one page."""
    per_chunk = total_pages / total_chunks
    start = min(math.floor(index * per_chunk) + 1, total_pages)
    end = min(math.floor((index + 1) * per_chunk), total_pages)
    return f"{start}-{max(start, end)}"


def time_range(index: int, total_chunks: int, total_seconds: int) -> str:
    """Evenly spread time range for chunk ``index``."""
    per_chunk = total_seconds / total_chunks
    start = math.floor(index * per_chunk)
    end = math.floor((index + 1) * per_chunk)
    return f"{format_time(start)}-{format_time(end)}"


def refine_chunk_metadata(
    chunks: list[StructuredChunk],
    source: DocumentSource | None,
) -> list[StructuredChunk]:
    """
    Return copies of ``chunks`` with page or time ranges filled in.

    Chunks are returned unchanged when the source has no page count or
    duration.
    """
    if not chunks or source is None:
        return chunks

    total = len(chunks)
    seconds = parse_duration(source.duration)

    if source.source_type in _PAGED_SOURCES and source.total_pages:
        return [
            c.model_copy(
                update={
                    "metadata": c.metadata.model_copy(
                        update={"page_range": page_range(i, total, source.total_pages)}
                    )
                }
            )
            for i, c in enumerate(chunks)
        ]

    if source.source_type in _TIMED_SOURCES and seconds > 0:
        return [
            c.model_copy(
                update={
                    "metadata": c.metadata.model_copy(
                        update={"time_range": time_range(i, total, seconds)}
                    )
                }
            )
            for i, c in enumerate(chunks)
        ]

    return chunks
