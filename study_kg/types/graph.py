"""
Knowledge Graph Types

The graph is rebuilt wholesale per document and handed to consumers as a
read-only snapshot; use ``study_kg.query`` to read it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from study_kg.types.entities import KnowledgeEntity, KnowledgeRelation
from study_kg.types.processing import ProcessingMode

GRAPH_VERSION = "1.0"
RULE_BASED_VERSION = "rule-based"


class GraphMetadata(BaseModel):
    """Provenance of a graph build."""

    source_name: str
    total_chunks: int = 0
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = GRAPH_VERSION
    processing_mode: ProcessingMode | None = None
    target_entities: int = 0


class KnowledgeGraph(BaseModel):
    """
    Entities and relations produced by one pipeline run over one document.

    Attributes:
        entities: Entities keyed by their stable id
        relations: Relations keyed by id (empty unless relation extraction is on)
        metadata: Source name, chunk count, version and processing mode
    """

    entities: dict[str, KnowledgeEntity] = {}
    relations: dict[str, KnowledgeRelation] = {}
    metadata: GraphMetadata

    @property
    def is_rule_based(self) -> bool:
        """True when the graph came from the emergency fallback path."""
        return self.metadata.version == RULE_BASED_VERSION


class GraphStats(BaseModel):
    """Diagnostic counts for a graph."""

    total_entities: int = 0
    total_relations: int = 0
    entities_by_type: dict[str, int] = {}
    entities_by_category: dict[str, int] = {}
    average_confidence: float = 0.0
