"""
Result Types

Types for completion responses, pipeline results and cost telemetry.

Completion Response Models (validated immediately after each LLM call):
    - ChunkStructure, StructuringResponse: Chunk structurer output
    - ExtractedElement, ExtractionResponse: Entity extractor output
    - ExtractedRelation, RelationExtractionResponse: Relation extractor output

Pipeline Result Models:
    - BuildResult: Everything one pipeline run produced
    - BatchOutcome: Per-batch success/failure bookkeeping

Cost Telemetry Models:
    - CostUsageRecord: One provider call
    - StageCostBreakdown, CostBreakdown, CostDebugReport: Aggregates
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from study_kg.types.chunks import DetailedConcept, StructuredChunk, string_list
from study_kg.types.graph import KnowledgeGraph
from study_kg.types.processing import ProcessingConfig

_CHUNK_TYPES = {"definition", "example", "procedure", "conclusion", "introduction", "analysis"}
_IMPORTANCE = {"low", "medium", "high"}
_ELEMENT_KEYS = ("elements", "people", "places", "organizations", "events", "concepts")


# -----------------------------------------------------------------------------
# Completion Response Models
# -----------------------------------------------------------------------------


class ChunkStructure(BaseModel):
    """
    Structured entry for one chunk, as returned by the structuring prompt.

    Field aliases match the camelCase keys the prompt requests.
    """

    index: int | None = Field(default=None, description="Document order of the chunk, as labelled in the prompt")
    summary: str = Field(default="", description="One to three sentence summary")
    key_ideas: list[str] = Field(default_factory=list, alias="keyIdeas")
    detailed_concepts: list[DetailedConcept] = Field(
        default_factory=list, alias="detailedConcepts"
    )
    title: str | None = None
    chunk_type: str | None = Field(default=None, alias="chunkType")
    importance: str | None = None
    dependencies: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("key_ideas", "dependencies", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> list[str]:
        return string_list(value)

    @field_validator("detailed_concepts", mode="before")
    @classmethod
    def _drop_malformed_concepts(cls, value: Any) -> list[DetailedConcept]:
        # One bad concept must not discard the rest of the chunk's structure
        if not isinstance(value, list):
            return []
        concepts = []
        for item in value:
            try:
                concepts.append(DetailedConcept.model_validate(item))
            except ValidationError:
                continue
        return concepts

    @field_validator("chunk_type", mode="before")
    @classmethod
    def _known_chunk_type(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip().lower() in _CHUNK_TYPES:
            return value.strip().lower()
        return None

    @field_validator("importance", mode="before")
    @classmethod
    def _known_importance(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip().lower() in _IMPORTANCE:
            return value.strip().lower()
        return None


class StructuringResponse(BaseModel):
    """Structuring prompt output: one entry per chunk in the batch."""

    chunks: list[ChunkStructure] = Field(..., description="One entry per input chunk, in order")


class ExtractedElement(BaseModel):
    """One element as returned by the extraction prompt."""

    name: str = Field(..., min_length=1)
    type: str | None = None
    aliases: list[str] = Field(default_factory=list)
    desc: str = ""
    cat: str | None = None
    conf: float | None = None
    chunks: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("aliases", "chunks", "examples", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> list[str]:
        return string_list(value)

    @field_validator("desc", mode="before")
    @classmethod
    def _coerce_desc(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("properties", mode="before")
    @classmethod
    def _coerce_properties(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}


class ExtractionResponse(BaseModel):
    """
    Extraction prompt output.

    Either a flat ``elements`` list, or type-partitioned lists. Items are
    kept as raw dicts so a single malformed element can be dropped without
    rejecting the whole batch.
    A reply carrying none of these keys does not match the schema.
    """

    elements: list[dict[str, Any]] = Field(default_factory=list)
    people: list[dict[str, Any]] = Field(default_factory=list)
    places: list[dict[str, Any]] = Field(default_factory=list)
    organizations: list[dict[str, Any]] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)
    concepts: list[dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _requires_element_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and not any(key in data for key in _ELEMENT_KEYS):
            raise ValueError(f"reply has none of the keys: {', '.join(_ELEMENT_KEYS)}")
        return data

    @field_validator(
        "elements", "people", "places", "organizations", "events", "concepts", mode="before"
    )
    @classmethod
    def _only_objects(cls, value: Any) -> list[dict[str, Any]]:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, dict)]


class ExtractedRelation(BaseModel):
    """One relation as returned by the relation prompt."""

    source: str = Field(..., min_length=1, alias="from")
    target: str = Field(..., min_length=1, alias="to")
    type: str = "related_to"
    desc: str = ""
    conf: float | None = None

    model_config = ConfigDict(populate_by_name=True)


class RelationExtractionResponse(BaseModel):
    """Relation prompt output."""

    relations: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("relations", mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> list[dict[str, Any]]:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, dict)]


# -----------------------------------------------------------------------------
# Cost Telemetry Models
# -----------------------------------------------------------------------------


class CostUsageRecord(BaseModel):
    """Token usage and estimated cost of one provider call."""

    provider: str
    model: str
    operation: str
    stage: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    latency_ms: int = 0
    estimated: bool = False
    metadata: dict[str, Any] = {}


class StageCostBreakdown(BaseModel):
    """Aggregated usage for one pipeline stage."""

    stage: str
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    total_latency_ms: int = 0
    failed_calls: int = 0
    estimated_calls: int = 0
    """Calls whose token usage was counted locally rather than reported"""


class CostBreakdown(BaseModel):
    """Aggregated usage for a whole pipeline run."""

    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    total_estimated_cost_usd: float = 0.0
    total_latency_ms: int = 0
    failed_calls: int = 0
    estimated_calls: int = 0
    by_stage: list[StageCostBreakdown] = []


class CostDebugReport(BaseModel):
    """Cost report attached to a pipeline result when telemetry is on."""

    enabled: bool = False
    pricing_version: str = ""
    breakdown: CostBreakdown = CostBreakdown()
    warnings: list[str] = []


# -----------------------------------------------------------------------------
# Pipeline Result Models
# -----------------------------------------------------------------------------


class BatchOutcome(BaseModel):
    """Bookkeeping for one batch of one stage."""

    stage: str
    batch_index: int
    chunk_ids: list[str] = []
    succeeded: bool = True
    skipped: bool = False
    error: str | None = None


class BuildResult(BaseModel):
    """
    Everything one pipeline run produced.

    Attributes:
        graph: The assembled knowledge graph
        chunks: Structured chunks for every raw chunk, in document order
        config: The processing profile used (None on the emergency path)
        used_fallback: True if the emergency rule-based graph was returned
        batches: Per-batch outcomes across structuring and extraction
        duration_seconds: Wall-clock time of the run
        cost: Cost report, when telemetry was enabled
        errors: Non-fatal errors encountered along the way
    """

    graph: KnowledgeGraph
    chunks: list[StructuredChunk] = []
    config: ProcessingConfig | None = None
    used_fallback: bool = False
    batches: list[BatchOutcome] = []
    duration_seconds: float = 0.0
    cost: CostDebugReport | None = None
    errors: list[str] = []

    @property
    def failed_batches(self) -> list[BatchOutcome]:
        """Batches that fell back or contributed nothing."""
        return [b for b in self.batches if not b.succeeded]
