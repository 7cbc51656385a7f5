"""
Ingestion Pipeline

Linear document-to-graph pipeline that turns extracted text into a
deduplicated knowledge graph.

Phases:
    Phase 1 - Chunking & Structuring:
        - Text -> bounded raw chunks with sentence overlap
        - Batched LLM structuring (summary, key ideas, concepts)
        - Concept-overlap linking of neighbouring chunks

    Phase 2 - Planning & Extraction (LLM-heavy):
        - Adaptive tier selection from page count
        - Budget-bounded chunk sampling for large documents
        - Mode-aware batched element extraction in concurrency waves

    Phase 3 - Resolution & Assembly:
        - Name/alias grouping with fuzzy fallback and confidence merge
        - Id-keyed graph assembly (rule-based graph on failure)

Modules:
    pipeline: Main orchestrator
    chunking/: Text chunking and metadata refinement
    structuring/: Chunk structuring and linking
    planning/: Adaptive config and sampling
    extraction/: LLM-based element and relation extraction
    resolution/: Deduplication and relation merge
    assembly/: Graph construction and emergency fallback
"""

from study_kg.ingestion.assembly import Assembler
from study_kg.ingestion.pipeline import KnowledgeGraphPipeline, PipelineContext
from study_kg.ingestion.resolution import dedupe_entities

__all__ = ["Assembler", "KnowledgeGraphPipeline", "PipelineContext", "dedupe_entities"]
