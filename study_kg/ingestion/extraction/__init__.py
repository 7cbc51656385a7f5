"""
LLM-Based Extraction

Batched, mode-aware extraction of study elements from structured chunks.

Modules:
    extractor: Adaptive element extraction in concurrency waves
    relations: Optional relation pass over each batch's element names

Entity Types:
    - concept, definition, tool, method, process, principle
    - person, place, organization, event
"""

from study_kg.ingestion.extraction.extractor import (
    ExtractionResult,
    build_extraction_prompt,
    detect_entity_type,
    extract_entities,
    extract_knowledge,
    format_chunk_context,
    parse_elements,
)
from study_kg.ingestion.extraction.relations import extract_relations

__all__ = [
    "extract_entities",
    "extract_knowledge",
    "extract_relations",
    "ExtractionResult",
    "build_extraction_prompt",
    "detect_entity_type",
    "format_chunk_context",
    "parse_elements",
]
