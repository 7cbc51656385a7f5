"""
Extraction Planning

Decides how much of a document the extractor sees and how.

Modules:
    adaptive: Tier selection producing a ProcessingConfig
    sampler: Budget-bounded chunk sampling for large documents
"""

from study_kg.ingestion.planning.adaptive import estimate_pages, pick_tier, select_config
from study_kg.ingestion.planning.sampler import chunk_value, sample_chunks

__all__ = ["select_config", "pick_tier", "estimate_pages", "sample_chunks", "chunk_value"]
