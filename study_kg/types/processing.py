"""
Processing Types

The adaptive processing profile chosen once per document.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RawTextInclusion = Literal["full", "partial", "none"]


class ProcessingMode(str, Enum):
    """Adaptive tiers trading completeness for bounded latency and cost."""

    FULL_QUALITY = "FULL_QUALITY"
    BALANCED = "BALANCED"
    SMART_SAMPLING = "SMART_SAMPLING"


class ProcessingConfig(BaseModel):
    """
    Derived processing profile for one document. Read-only once computed.

    Attributes:
        processing_mode: Selected tier
        max_chunks_to_process: Sampling budget for the extractor
        batch_size: Chunks per extraction request
        max_entities_per_batch: Element target stated in the extraction prompt
        confidence_threshold: Minimum merged confidence kept in the graph
        target_time_minutes: Wall-clock budget signal
        expected_entities: Rough entity estimate, informational only
        estimated_pages: Page count used for tier selection
        extraction_mode: Extraction focus named in the system prompt
        include_raw_text: How much raw chunk text the extraction prompt carries
        use_quality_model: Extract with the quality model instead of the bulk model
        temperature: Sampling temperature for extraction calls
        max_response_tokens: Completion token cap for extraction calls
    """

    processing_mode: ProcessingMode
    max_chunks_to_process: int = Field(..., ge=0)
    batch_size: int = Field(..., ge=1)
    max_entities_per_batch: int = Field(..., ge=1)
    confidence_threshold: float = Field(..., ge=0.0, le=1.0)
    target_time_minutes: float = Field(..., gt=0)
    expected_entities: int = Field(default=0, ge=0)
    estimated_pages: int = Field(default=0, ge=0)
    extraction_mode: str = "STANDARD"
    include_raw_text: RawTextInclusion = "full"
    use_quality_model: bool = False
    temperature: float = 0.2
    max_response_tokens: int = 1500

    model_config = ConfigDict(frozen=True)
