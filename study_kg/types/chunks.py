"""
Chunk Types

Chunks are bounded slices of a source document's extracted text.

Chunking Models:
    - DocumentSource: Upstream metadata bundle describing the document
    - RawChunk: Output of the chunker, immutable once created

Structuring Models:
    - DetailedConcept: A concept explained within a chunk
    - ChunkMetadata: Page/time range, chunk type and importance
    - StructuredChunk: Summarised chunk, one per RawChunk
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SourceType = Literal["pdf", "youtube", "text", "docx", "image", "audio", "url"]

ChunkTypeLabel = Literal[
    "definition", "example", "procedure", "conclusion", "introduction", "analysis"
]

Importance = Literal["low", "medium", "high"]


def string_list(value: Any) -> list[str]:
    """Coerce a loosely-typed JSON value into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return []


class DocumentSource(BaseModel):
    """
    Metadata bundle supplied alongside extracted text.

    Attributes:
        source_type: Where the text came from (pdf, youtube, text, ...)
        file_name: Display name of the source, also used as the graph's source name
        total_pages: Page count for paged sources, when known
        duration: Running time for media sources ("5:30", "1:30:45")
    """

    source_type: SourceType = "text"
    file_name: str = "document"
    total_pages: int | None = Field(default=None, ge=0)
    duration: str | None = None


class RawChunk(BaseModel):
    """
    A contiguous slice of the source text produced by the chunker.

    Chunks are emitted in document order with ``order`` starting at 0.
    Neighbouring chunks may share a few trailing sentences of overlap.
    """

    content: str
    order: int = Field(..., ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class DetailedConcept(BaseModel):
    """A concept that a chunk explains in some depth."""

    concept: str = Field(..., description="Concept name")
    explanation: str = Field(default="", description="Detailed explanation of the concept")
    examples: list[str] = Field(default_factory=list, description="Illustrative examples")
    category: str | None = Field(default=None, description="Thematic category")

    @field_validator("examples", mode="before")
    @classmethod
    def _coerce_examples(cls, value: Any) -> list[str]:
        return string_list(value)


class ChunkMetadata(BaseModel):
    """Positional and editorial metadata attached to a structured chunk."""

    page_range: str | None = None
    time_range: str | None = None
    chunk_type: ChunkTypeLabel | None = None
    importance: Importance = "medium"


class StructuredChunk(BaseModel):
    """
    A raw chunk after structuring: summary, key ideas and concepts.

    Attributes:
        id: Stable chunk id ("chunk-{order}")
        summary: One to three sentence summary
        key_ideas: Up to five headline facts
        detailed_concepts: Up to three concepts with explanations
        title: Descriptive section title
        related_chunks: Ids of linked chunks (filled by the linker)
        dependencies: Concepts the reader needs from earlier sections
        raw_text: The raw chunk content this was built from
        order: Position in the document (matches the raw chunk)
        token_count: Locally estimated token count of raw_text
        metadata: Page/time range, chunk type and importance
    """

    id: str
    summary: str = ""
    key_ideas: list[str] = Field(default_factory=list)
    detailed_concepts: list[DetailedConcept] = Field(default_factory=list)
    title: str | None = None
    related_chunks: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    raw_text: str = ""
    order: int = Field(..., ge=0)
    token_count: int = Field(default=0, ge=0)
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
