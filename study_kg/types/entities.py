"""
Entity Types

Entities are the named units of knowledge found in a document.

Graph Models:
    - EntityType: Classification enum
    - KnowledgeEntity: Durable graph node produced by deduplication
    - KnowledgeRelation: Directed edge between two entities

Extraction Models (transient, discarded after merging):
    - RawEntityExtraction: One element returned by one extraction batch
    - RawRelationExtraction: One relation returned by one extraction batch
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_CONFIDENCE = 0.75
"""Confidence assumed when the model does not assert one."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp_confidence(value: float | None) -> float | None:
    if value is None:
        return None
    return min(1.0, max(0.0, float(value)))


class EntityType(str, Enum):
    """Entity classification types."""

    PERSON = "person"
    PLACE = "place"
    ORGANIZATION = "organization"
    CONCEPT = "concept"
    EVENT = "event"
    DEFINITION = "definition"
    TOOL = "tool"
    METHOD = "method"
    PROCESS = "process"
    PRINCIPLE = "principle"


class KnowledgeEntity(BaseModel):
    """
    A deduplicated node in the knowledge graph.

    Attributes:
        id: Stable id derived from type and normalised name
        type: Classification
        name: Canonical name
        aliases: Alternative names (never contains name, unique case-insensitively)
        properties: Free-form attributes (description, category, examples)
        descriptions: Descriptions gathered for this entity, best first
        source_chunks: Ids of the chunks the entity was extracted from
        confidence: Extraction/merge certainty in [0, 1]
        category: Optional thematic category
        last_updated: When the entity was produced
    """

    id: str
    type: EntityType
    name: str
    aliases: list[str] = []
    properties: dict[str, Any] = {}
    descriptions: list[str] = []
    source_chunks: list[str] = []
    confidence: float = Field(..., ge=0.0, le=1.0)
    category: str | None = None
    last_updated: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(use_enum_values=False)

    @model_validator(mode="after")
    def _normalize_aliases(self) -> "KnowledgeEntity":
        seen = {self.name.strip().lower()}
        unique: list[str] = []
        for alias in self.aliases:
            alias = alias.strip()
            key = alias.lower()
            if alias and key not in seen:
                seen.add(key)
                unique.append(alias)
        self.aliases = unique
        return self


class KnowledgeRelation(BaseModel):
    """
    A directed, typed edge between two entities.

    The ``from`` endpoint is exposed as ``from_id`` (``from`` is reserved).
    """

    id: str
    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    type: str
    properties: dict[str, Any] = {}
    source_chunks: list[str] = []
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(populate_by_name=True)


# -----------------------------------------------------------------------------
# Extraction Models (used during ingestion pipeline)
# -----------------------------------------------------------------------------


class RawEntityExtraction(BaseModel):
    """
    One element extracted by one batch, before merging.

    The short field names mirror the JSON the extraction prompt asks for.
    """

    name: str = Field(..., min_length=1, description="Element name as it appears in the text")
    type: str = Field(default="concept", description="Free-form type reported by the model")
    aliases: list[str] = Field(default_factory=list, description="Alternative names or synonyms")
    desc: str = Field(default="", description="Description of the element")
    cat: str | None = Field(default=None, description="Thematic category")
    conf: float | None = Field(default=None, description="Model-asserted confidence in [0, 1]")
    source_chunks: list[str] = Field(
        default_factory=list, description="Ids of the chunks in the originating batch"
    )
    examples: list[str] = Field(default_factory=list, description="Illustrative examples")
    properties: dict[str, Any] = Field(default_factory=dict, description="Extra attributes")

    @field_validator("conf", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float | None:
        return _clamp_confidence(value)

    @property
    def confidence(self) -> float:
        """Confidence with the default applied."""
        return self.conf if self.conf is not None else DEFAULT_CONFIDENCE


class RawRelationExtraction(BaseModel):
    """One relation between two extracted element names, before merging."""

    source: str = Field(..., description="Name of the element the relation starts from")
    target: str = Field(..., description="Name of the element the relation points to")
    type: str = Field(default="related_to", description="Relation label")
    desc: str = Field(default="", description="Short justification")
    conf: float | None = Field(default=None, description="Model-asserted confidence in [0, 1]")
    source_chunks: list[str] = Field(default_factory=list)

    @field_validator("conf", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float | None:
        return _clamp_confidence(value)

    @property
    def confidence(self) -> float:
        """Confidence with the default applied."""
        return self.conf if self.conf is not None else DEFAULT_CONFIDENCE
