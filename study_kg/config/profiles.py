"""
Adaptive Processing Tiers

Size tiers used by the adaptive config selector. Each tier is chosen by
estimated page count (chunk count x 3 when the page count is unknown)
and fixes the sampling budget, batch size, confidence threshold and
extraction prompt depth for the document.

The tuple is ordered; the first tier whose ``max_pages`` admits the
document wins, and a tier with ``max_pages=None`` catches everything.
Pass an alternative tuple to ``select_config`` to retune.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from study_kg.types.processing import ProcessingMode, RawTextInclusion

PAGES_PER_CHUNK_ESTIMATE = 3


@dataclass(frozen=True)
class TierProfile:
    """Constants for one adaptive tier."""

    mode: ProcessingMode
    max_pages: int | None
    """Inclusive page ceiling for this tier (None = no ceiling)"""

    batch_size: int
    max_entities_per_batch: int
    confidence_threshold: float
    target_time_minutes: float

    chunk_floor: int | None = None
    """Lower bound of the sampling budget (None = process every chunk)"""

    chunk_cap: int | None = None
    """Upper bound of the sampling budget (None = process every chunk)"""

    expected_basis: Literal["chunks", "pages"] = "pages"
    expected_per_unit: float = 2.0
    expected_cap: int = 120

    extraction_mode: str = "STANDARD"
    include_raw_text: RawTextInclusion = "full"
    use_quality_model: bool = False
    temperature: float = 0.2
    max_response_tokens: int = 1500


FULL_QUALITY = TierProfile(
    mode=ProcessingMode.FULL_QUALITY,
    max_pages=10,
    batch_size=2,
    max_entities_per_batch=12,
    confidence_threshold=0.45,
    target_time_minutes=1,
    expected_basis="chunks",
    expected_per_unit=8,
    expected_cap=60,
    extraction_mode="DETAILED",
    include_raw_text="full",
    use_quality_model=True,
    temperature=0.3,
    max_response_tokens=2000,
)

BALANCED = TierProfile(
    mode=ProcessingMode.BALANCED,
    max_pages=50,
    batch_size=3,
    max_entities_per_batch=10,
    confidence_threshold=0.5,
    target_time_minutes=3,
    chunk_floor=15,
    chunk_cap=25,
    expected_basis="pages",
    expected_per_unit=2,
    expected_cap=120,
    extraction_mode="STANDARD",
    include_raw_text="full",
    max_response_tokens=1500,
)

SMART_SAMPLING = TierProfile(
    mode=ProcessingMode.SMART_SAMPLING,
    max_pages=None,
    batch_size=4,
    max_entities_per_batch=15,
    confidence_threshold=0.52,
    target_time_minutes=6,
    chunk_floor=20,
    chunk_cap=40,
    expected_basis="pages",
    expected_per_unit=1.5,
    expected_cap=200,
    extraction_mode="COMPREHENSIVE",
    include_raw_text="partial",
    max_response_tokens=1800,
)

TIER_PROFILES: tuple[TierProfile, ...] = (FULL_QUALITY, BALANCED, SMART_SAMPLING)
