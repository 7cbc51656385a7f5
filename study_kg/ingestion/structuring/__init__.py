"""
Chunk Structuring

Converts raw chunks into structured chunks and links related neighbours.

Modules:
    structurer: Batched LLM structuring with rule-based fallback
    linker: Concept-overlap linking between consecutive chunks
"""

from study_kg.ingestion.structuring.linker import link_chunks
from study_kg.ingestion.structuring.structurer import (
    optimal_batch_size,
    quick_structure,
    rule_based_chunk,
    structure_chunks,
)

__all__ = [
    "structure_chunks",
    "optimal_batch_size",
    "rule_based_chunk",
    "quick_structure",
    "link_chunks",
]
