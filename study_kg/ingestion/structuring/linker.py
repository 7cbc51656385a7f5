"""
Relationship Linker

Rule-based pass that links each structured chunk to its predecessor when
the two share a detailed concept (case-insensitive substring containment
in either direction). No model call is made.
"""

from __future__ import annotations

import logging

from study_kg.types.chunks import StructuredChunk

logger = logging.getLogger(__name__)

MIN_CHUNKS_TO_LINK = 3


def _concept_names(chunk: StructuredChunk) -> list[str]:
    return [c.concept.strip().lower() for c in chunk.detailed_concepts if c.concept.strip()]


def _concepts_overlap(current: list[str], previous: list[str]) -> bool:
    return any(a in b or b in a for a in current for b in previous)


def link_chunks(chunks: list[StructuredChunk]) -> list[StructuredChunk]:
    """
    Record each chunk's predecessor in ``related_chunks`` when concepts overlap.

    Chunks are updated in place and the same list is returned. Documents
    with fewer than three chunks are left untouched.
    """
    if len(chunks) < MIN_CHUNKS_TO_LINK:
        return chunks

    by_order = sorted(chunks, key=lambda c: c.order)
    links = 0
    for previous, current in zip(by_order, by_order[1:]):
        if _concepts_overlap(_concept_names(current), _concept_names(previous)):
            if previous.id not in current.related_chunks:
                current.related_chunks.append(previous.id)
                links += 1

    logger.debug(f"Linked {links} chunk pair(s) across {len(chunks)} chunks")
    return chunks
