"""
Type Definitions

Pydantic models for all data structures.

Chunk Models:
    - DocumentSource - Upstream metadata bundle
    - RawChunk - Chunker output
    - StructuredChunk, DetailedConcept, ChunkMetadata - Structurer output

Graph Models:
    - KnowledgeEntity, EntityType - Deduplicated graph nodes
    - KnowledgeRelation - Graph edges
    - KnowledgeGraph, GraphMetadata, GraphStats - The assembled graph

Extraction Models (used during ingestion pipeline):
    - RawEntityExtraction, RawRelationExtraction - Per-batch extraction output
    - StructuringResponse, ExtractionResponse, RelationExtractionResponse - Completion schemas

Processing Models:
    - ProcessingMode, ProcessingConfig - Adaptive per-document profile

Result Models:
    - BuildResult, BatchOutcome - Pipeline output
    - CostUsageRecord, CostDebugReport - Cost telemetry
"""

from study_kg.types.chunks import (
    ChunkMetadata,
    ChunkTypeLabel,
    DetailedConcept,
    DocumentSource,
    Importance,
    RawChunk,
    SourceType,
    StructuredChunk,
)
from study_kg.types.entities import (
    DEFAULT_CONFIDENCE,
    EntityType,
    KnowledgeEntity,
    KnowledgeRelation,
    RawEntityExtraction,
    RawRelationExtraction,
)
from study_kg.types.graph import GraphMetadata, GraphStats, KnowledgeGraph
from study_kg.types.processing import ProcessingConfig, ProcessingMode
from study_kg.types.results import (
    BatchOutcome,
    BuildResult,
    ChunkStructure,
    CostBreakdown,
    CostDebugReport,
    CostUsageRecord,
    ExtractedElement,
    ExtractedRelation,
    ExtractionResponse,
    RelationExtractionResponse,
    StageCostBreakdown,
    StructuringResponse,
)

__all__ = [
    # Chunk Models
    "SourceType",
    "ChunkTypeLabel",
    "Importance",
    "DocumentSource",
    "RawChunk",
    "DetailedConcept",
    "ChunkMetadata",
    "StructuredChunk",
    # Graph Models
    "DEFAULT_CONFIDENCE",
    "EntityType",
    "KnowledgeEntity",
    "KnowledgeRelation",
    "GraphMetadata",
    "GraphStats",
    "KnowledgeGraph",
    # Extraction Models
    "RawEntityExtraction",
    "RawRelationExtraction",
    "ChunkStructure",
    "StructuringResponse",
    "ExtractedElement",
    "ExtractionResponse",
    "ExtractedRelation",
    "RelationExtractionResponse",
    # Processing Models
    "ProcessingMode",
    "ProcessingConfig",
    # Result Models
    "BatchOutcome",
    "BuildResult",
    "CostUsageRecord",
    "StageCostBreakdown",
    "CostBreakdown",
    "CostDebugReport",
]
