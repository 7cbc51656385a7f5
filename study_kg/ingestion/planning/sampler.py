"""
Chunk Sampler

Selects a representative, budget-bounded subset of structured chunks.

Selection:
    1. The first and last chunks are always kept
    2. Up to 60% of the remaining budget goes to the highest-value chunks
    3. The rest is filled with evenly spaced chunks from those left over
    4. The selection is re-sorted by ``order``

Selection is deterministic: ties in value are broken by document order.
"""

from __future__ import annotations

import logging
import math

from study_kg.types.chunks import StructuredChunk

logger = logging.getLogger(__name__)

HIGH_VALUE_SHARE = 0.6

_TYPE_BONUS = {"definition": 5, "introduction": 3, "conclusion": 3}


def chunk_value(chunk: StructuredChunk) -> float:
    """
    Content-richness score of a chunk.

    ``3*concepts + key_ideas + 2*dependencies``, times 1.5 for high
    importance, plus a bonus for definition/introduction/conclusion chunks.
    """
    score = (
        3 * len(chunk.detailed_concepts)
        + len(chunk.key_ideas)
        + 2 * len(chunk.dependencies)
    )
    if chunk.metadata.importance == "high":
        score *= 1.5
    score += _TYPE_BONUS.get(chunk.metadata.chunk_type or "", 0)
    return float(score)


def _even_sample(items: list[StructuredChunk], count: int) -> list[StructuredChunk]:
    """``count`` items spread evenly across ``items`` (first item included)."""
    if count <= 0 or not items:
        return []
    if count >= len(items):
        return list(items)
    step = len(items) / count
    return [items[math.floor(i * step)] for i in range(count)]


def sample_chunks(chunks: list[StructuredChunk], max_chunks: int) -> list[StructuredChunk]:
    """
    Reduce ``chunks`` to at most ``max_chunks`` representative chunks.

    Returns the input unchanged when it already fits the budget or when
    ``max_chunks`` is not positive.
    """
    if max_chunks <= 0 or len(chunks) <= max_chunks:
        return chunks

    ordered = sorted(chunks, key=lambda c: c.order)
    if max_chunks == 1:
        return ordered[:1]

    first, last = ordered[0], ordered[-1]
    middle = ordered[1:-1]
    remaining_slots = max_chunks - 2

    ranked = sorted(
        (c for c in middle if chunk_value(c) > 0),
        key=lambda c: (-chunk_value(c), c.order),
    )
    high_value = ranked[: math.floor(remaining_slots * HIGH_VALUE_SHARE)]
    chosen = {c.order for c in high_value}

    leftovers = [c for c in middle if c.order not in chosen]
    filler = _even_sample(leftovers, remaining_slots - len(high_value))

    selected = sorted([first, last, *high_value, *filler], key=lambda c: c.order)
    logger.info(
        f"Smart sampling: {len(chunks)} -> {len(selected)} chunks "
        f"({len(high_value)} high-value, {len(filler)} evenly spaced)"
    )
    logger.debug(f"Selected chunk positions: {', '.join(str(c.order) for c in selected)}")
    return selected
