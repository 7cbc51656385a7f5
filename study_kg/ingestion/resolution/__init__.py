"""
Entity Resolution

Deduplication of raw extractions into graph entities.

Modules:
    entity_dedup: Name/alias grouping, fuzzy fallback and merge
    relation_merge: Endpoint resolution and merge for optional relations
"""

from study_kg.ingestion.resolution.entity_dedup import (
    as_raw_extraction,
    dedupe_entities,
    merge_instances,
    merged_confidence,
)
from study_kg.ingestion.resolution.relation_merge import merge_relations

__all__ = [
    "dedupe_entities",
    "merge_instances",
    "merged_confidence",
    "as_raw_extraction",
    "merge_relations",
]
