"""
Adaptive Config Selector

Chooses a processing profile for a document from its estimated page count.

Small documents are processed in full with the quality model; medium and
large documents are capped to a sampling budget so extraction time stays
bounded. Tier constants live in ``study_kg.config.profiles``.

Example:
    >>> config = select_config(chunks, total_pages=5)
    >>> config.processing_mode
    <ProcessingMode.FULL_QUALITY: 'FULL_QUALITY'>
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from study_kg.config.profiles import PAGES_PER_CHUNK_ESTIMATE, TIER_PROFILES, TierProfile
from study_kg.types.chunks import StructuredChunk
from study_kg.types.processing import ProcessingConfig

logger = logging.getLogger(__name__)


def estimate_pages(chunk_count: int, total_pages: int | None = None) -> int:
    """Known page count, or ``chunk_count * 3`` when unknown."""
    if total_pages:
        return total_pages
    return chunk_count * PAGES_PER_CHUNK_ESTIMATE


def pick_tier(pages: int, profiles: Sequence[TierProfile] = TIER_PROFILES) -> TierProfile:
    """First tier whose page ceiling admits ``pages``."""
    if not profiles:
        raise ValueError("At least one tier profile is required")
    for profile in profiles:
        if profile.max_pages is None or pages <= profile.max_pages:
            return profile
    return profiles[-1]


def _chunk_budget(profile: TierProfile, chunk_count: int) -> int:
    if profile.chunk_floor is None or profile.chunk_cap is None:
        return chunk_count
    return max(profile.chunk_floor, min(chunk_count, profile.chunk_cap))


def _expected_entities(profile: TierProfile, chunk_count: int, pages: int) -> int:
    units = chunk_count if profile.expected_basis == "chunks" else pages
    return int(min(math.floor(units * profile.expected_per_unit), profile.expected_cap))


def select_config(
    chunks: list[StructuredChunk],
    total_pages: int | None = None,
    *,
    profiles: Sequence[TierProfile] = TIER_PROFILES,
) -> ProcessingConfig:
    """
    Select the processing profile for a structured chunk set.

    Args:
        chunks: Structured chunks of the document
        total_pages: Known page count (estimated from chunk count if omitted)
        profiles: Ordered tier table; the default is TIER_PROFILES

    Returns:
        Frozen ProcessingConfig for this document
    """
    chunk_count = len(chunks)
    pages = estimate_pages(chunk_count, total_pages)
    total_tokens = sum(c.token_count for c in chunks)
    profile = pick_tier(pages, profiles)

    config = ProcessingConfig(
        processing_mode=profile.mode,
        max_chunks_to_process=_chunk_budget(profile, chunk_count),
        batch_size=profile.batch_size,
        max_entities_per_batch=profile.max_entities_per_batch,
        confidence_threshold=profile.confidence_threshold,
        target_time_minutes=profile.target_time_minutes,
        expected_entities=_expected_entities(profile, chunk_count, pages),
        estimated_pages=pages,
        extraction_mode=profile.extraction_mode,
        include_raw_text=profile.include_raw_text,
        use_quality_model=profile.use_quality_model,
        temperature=profile.temperature,
        max_response_tokens=profile.max_response_tokens,
    )

    logger.info(
        f"Document profile: {pages} pages, {chunk_count} chunks, {total_tokens} tokens "
        f"-> {config.processing_mode.value} (budget {config.max_chunks_to_process} chunks, "
        f"~{config.expected_entities} entities in {config.target_time_minutes:g} min)"
    )
    return config
