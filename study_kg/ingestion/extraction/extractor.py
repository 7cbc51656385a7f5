"""
Adaptive Entity Extractor

Extracts typed study elements (concepts, definitions, methods, people,
places, ...) from structured chunks, one completion request per batch.

Prompt depth follows the processing mode:
    FULL_QUALITY: full raw text, more elements per batch, quality model
    BALANCED: full raw text, the most important elements
    SMART_SAMPLING: partial raw text, a deliberately diverse mix of types

Batches run in concurrency waves. A failed batch contributes nothing and
is logged; it never aborts the extraction.

Example:
    >>> from study_kg.providers import create_llm_provider
    >>> llm = create_llm_provider(KGConfig())
    >>> raw = await extract_entities(chunks, "biology.pdf", config, llm)
    >>> print(f"Extracted {len(raw)} raw elements")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import ValidationError

from study_kg.exceptions import CompletionParseError, CompletionRequestError
from study_kg.ingestion.extraction.relations import extract_relations
from study_kg.providers.completion import request_json
from study_kg.types.chunks import StructuredChunk
from study_kg.types.entities import EntityType, RawEntityExtraction, RawRelationExtraction
from study_kg.types.processing import ProcessingConfig, ProcessingMode
from study_kg.types.results import BatchOutcome, ExtractedElement, ExtractionResponse
from study_kg.utils.batching import chunked, run_in_waves
from study_kg.utils.cost_telemetry import telemetry_stage
from study_kg.utils.text import clean_entity_name

if TYPE_CHECKING:
    from study_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

FULL_RAW_TEXT_CHARS = 800
PARTIAL_RAW_TEXT_CHARS = 400
MAX_PROMPT_KEY_IDEAS = 4
CONCEPT_EXPLANATION_CHARS = 80

# Type-partitioned response keys and the entity type they imply
_PARTITIONS = {
    "people": EntityType.PERSON,
    "places": EntityType.PLACE,
    "organizations": EntityType.ORGANIZATION,
    "events": EntityType.EVENT,
    "concepts": EntityType.CONCEPT,
}

# Substring rules for free-form types, first match wins
_TYPE_RULES: tuple[tuple[tuple[str, ...], EntityType], ...] = (
    (("algorithm", "method", "procedure"), EntityType.METHOD),
    (("tool", "software", "library"), EntityType.TOOL),
    (("definition", "term"), EntityType.DEFINITION),
    (("principle", "law", "rule"), EntityType.PRINCIPLE),
    (("process", "workflow"), EntityType.PROCESS),
    (("person", "people"), EntityType.PERSON),
    (("place", "location", "city", "country"), EntityType.PLACE),
    (("company", "organization", "organisation", "institution"), EntityType.ORGANIZATION),
    (("event", "war", "battle"), EntityType.EVENT),
)


# -----------------------------------------------------------------------------
# LLM Prompts
# -----------------------------------------------------------------------------

_EXTRACTION_SYSTEM_PROMPT = """\
Expert knowledge extractor. Adapt extraction depth to document complexity.
Focus on {extraction_mode} extraction. Use clean element names without
parenthetical descriptions. Respond with a single JSON object."""

_FULL_QUALITY_TEMPLATE = """\
COMPREHENSIVE element extraction from {count} sections of "{source_name}":

{context}

Extract ALL valuable elements with high precision. Return JSON:
{{
  "elements": [
    {{
      "name": "precise element name",
      "type": "concept|definition|tool|method|process|principle|person|place|organization|event",
      "aliases": ["alternative names", "synonyms"],
      "desc": "detailed description",
      "cat": "specific category",
      "conf": 0.85,
      "chunks": ["{first_chunk_id}"],
      "examples": ["example1", "example2"],
      "properties": {{"key": "value"}}
    }}
  ]
}}

TARGET: Extract {target}-{target_high} high-quality elements. Include definitions,
concepts, tools, methods and key people, places and events. Be comprehensive but precise."""

_BALANCED_TEMPLATE = """\
BALANCED element extraction from {count} sections of "{source_name}":

{context}

Extract important elements efficiently. Return JSON:
{{
  "elements": [
    {{
      "name": "element name",
      "type": "concept|definition|tool|method|process",
      "aliases": ["alt names"],
      "desc": "clear description",
      "cat": "category",
      "conf": 0.8,
      "chunks": ["{first_chunk_id}"],
      "examples": ["example"]
    }}
  ]
}}

TARGET: Extract the {target} most important elements. Focus on key concepts,
definitions and methods."""

_SMART_SAMPLING_TEMPLATE = """\
DIVERSE sampling extraction from {count} sections of "{source_name}":

{context}

These sections are a sample of a longer document. Extract a diverse range of
elements representing the full document. Return JSON:
{{
  "elements": [
    {{
      "name": "element name",
      "type": "concept|definition|tool|method|process|principle|person|place|event",
      "aliases": ["variations"],
      "desc": "description",
      "cat": "category",
      "conf": 0.75,
      "chunks": ["{first_chunk_id}"]
    }}
  ]
}}

TARGET: Extract {target} elements representing diverse aspects. Include a variety
of types and categories."""

_MODE_TEMPLATES = {
    ProcessingMode.FULL_QUALITY: _FULL_QUALITY_TEMPLATE,
    ProcessingMode.BALANCED: _BALANCED_TEMPLATE,
    ProcessingMode.SMART_SAMPLING: _SMART_SAMPLING_TEMPLATE,
}


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def detect_entity_type(raw_type: str | None) -> EntityType:
    """
    Map a free-form type label onto EntityType.

    Exact enum values pass through; otherwise substring rules apply and
    anything unrecognised becomes a concept.
    """
    label = (raw_type or "").strip().lower()
    if not label:
        return EntityType.CONCEPT
    try:
        return EntityType(label)
    except ValueError:
        pass
    for needles, entity_type in _TYPE_RULES:
        if any(needle in label for needle in needles):
            return entity_type
    return EntityType.CONCEPT


def format_chunk_context(chunk: StructuredChunk, total: int, include_raw_text: str) -> str:
    """Render one chunk for the extraction prompt."""
    title = chunk.title or f"Section {chunk.order + 1}"
    lines = [
        f"CHUNK {chunk.order + 1}/{total} [{chunk.id}]: {title}",
        f"Type: {chunk.metadata.chunk_type or 'analysis'} | Importance: {chunk.metadata.importance}",
        "",
        f"KEY IDEAS: {' • '.join(chunk.key_ideas[:MAX_PROMPT_KEY_IDEAS])}",
    ]

    if chunk.detailed_concepts:
        lines.append("")
        lines.append("DETAILED CONCEPTS:")
        for concept in chunk.detailed_concepts:
            category = f" [{concept.category}]" if concept.category else ""
            explanation = concept.explanation[:CONCEPT_EXPLANATION_CHARS]
            lines.append(f"• {concept.concept}: {explanation}{category}")

    if include_raw_text == "full":
        lines.append("")
        lines.append(f"RAW CONTENT: {chunk.raw_text[:FULL_RAW_TEXT_CHARS]}")
    elif include_raw_text == "partial":
        lines.append("")
        lines.append(f"KEY CONTENT: {chunk.raw_text[:PARTIAL_RAW_TEXT_CHARS]}")

    if chunk.dependencies:
        lines.append(f"DEPENDENCIES: {', '.join(chunk.dependencies)}")

    return "\n".join(lines)


def build_extraction_prompt(
    batch: list[StructuredChunk],
    source_name: str,
    config: ProcessingConfig,
    total_chunks: int,
) -> str:
    """Build the mode-specific user prompt for one batch."""
    context = "\n\n---\n\n".join(
        format_chunk_context(chunk, total_chunks, config.include_raw_text) for chunk in batch
    )
    template = _MODE_TEMPLATES[config.processing_mode]
    return template.format(
        count=len(batch),
        source_name=source_name,
        context=context,
        first_chunk_id=batch[0].id if batch else "chunk-0",
        target=config.max_entities_per_batch,
        target_high=config.max_entities_per_batch + 5,
    )


def _flatten_response(response: ExtractionResponse) -> list[tuple[dict, EntityType | None]]:
    """Pair every returned item with its partition type (None for ``elements``)."""
    items: list[tuple[dict, EntityType | None]] = [(item, None) for item in response.elements]
    for key, entity_type in _PARTITIONS.items():
        items.extend((item, entity_type) for item in getattr(response, key))
    return items


def parse_elements(
    response: ExtractionResponse,
    chunk_ids: list[str],
) -> list[RawEntityExtraction]:
    """
    Validate returned items one by one and convert them to raw extractions.

    Malformed items are dropped individually. Every extraction is tagged
    with the batch's chunk ids.
    """
    extractions: list[RawEntityExtraction] = []
    for item, partition_type in _flatten_response(response):
        try:
            element = ExtractedElement.model_validate(item)
        except ValidationError:
            logger.debug(f"Dropping malformed element: {item!r}")
            continue

        name = clean_entity_name(element.name)
        if not name:
            continue

        entity_type = partition_type or detect_entity_type(element.type)
        try:
            extractions.append(
                RawEntityExtraction(
                    name=name,
                    type=entity_type.value,
                    aliases=[clean_entity_name(a) for a in element.aliases],
                    desc=element.desc.strip(),
                    cat=element.cat,
                    conf=element.conf,
                    source_chunks=list(chunk_ids),
                    examples=element.examples,
                    properties=element.properties,
                )
            )
        except ValidationError:
            logger.debug(f"Dropping element with invalid values: {item!r}")

    return extractions


# -----------------------------------------------------------------------------
# Batch Extraction with Concurrency
# -----------------------------------------------------------------------------


@dataclass
class ExtractionResult:
    """Flattened output of all extraction batches."""

    entities: list[RawEntityExtraction] = field(default_factory=list)
    relations: list[RawRelationExtraction] = field(default_factory=list)
    outcomes: list[BatchOutcome] = field(default_factory=list)


async def extract_knowledge(
    chunks: list[StructuredChunk],
    source_name: str,
    config: ProcessingConfig,
    llm: "LLMProvider",
    *,
    quality_llm: "LLMProvider | None" = None,
    concurrency: int | None = None,
    wave_delay_seconds: float = 0.1,
    timeout: float | None = 60.0,
    deadline: float | None = None,
    with_relations: bool = False,
) -> ExtractionResult:
    """
    Extract elements (and optionally relations) from all chunks.

    Args:
        chunks: Structured chunks to extract from (already sampled)
        source_name: Document name shown in the prompt
        config: Processing profile (batch size, mode, token budget)
        llm: Bulk provider
        quality_llm: Provider used when ``config.use_quality_model`` is set
        concurrency: Batches in flight per wave (None = 2 for FULL_QUALITY, else 4)
        wave_delay_seconds: Pause between waves
        timeout: Per-request timeout in seconds
        deadline: ``time.monotonic()`` value after which remaining waves are skipped
        with_relations: Issue a relation request per successful batch

    Returns:
        ExtractionResult with raw extractions and per-batch outcomes
    """
    result = ExtractionResult()
    if not chunks:
        return result

    ordered = sorted(chunks, key=lambda c: c.order)
    batches = chunked(ordered, config.batch_size)
    model = quality_llm if (config.use_quality_model and quality_llm is not None) else llm
    full_quality = config.processing_mode == ProcessingMode.FULL_QUALITY
    wave_size = concurrency or (2 if full_quality else 4)
    system = _EXTRACTION_SYSTEM_PROMPT.format(extraction_mode=config.extraction_mode.lower())

    logger.info(
        f"Adaptive extraction: {config.processing_mode.value} mode, {len(ordered)} chunks "
        f"in {len(batches)} batches ({wave_size} concurrent, model {model.model_name})"
    )

    async def extract_batch(
        index: int, batch: list[StructuredChunk]
    ) -> tuple[list[RawEntityExtraction], list[RawRelationExtraction]]:
        chunk_ids = [c.id for c in batch]
        prompt = build_extraction_prompt(batch, source_name, config, len(ordered))
        response = await request_json(
            model,
            prompt,
            ExtractionResponse,
            system=system,
            temperature=config.temperature,
            max_tokens=config.max_response_tokens,
            timeout=timeout,
        )
        elements = parse_elements(response, chunk_ids)
        logger.debug(f"Batch {index} ({config.processing_mode.value}): {len(elements)} elements")

        relations: list[RawRelationExtraction] = []
        if with_relations and len(elements) > 1:
            try:
                with telemetry_stage("relations"):
                    relations = await extract_relations(
                        [e.name for e in elements],
                        "\n".join(c.summary for c in batch if c.summary),
                        llm,
                        source_name=source_name,
                        chunk_ids=chunk_ids,
                        timeout=timeout,
                    )
            except (CompletionRequestError, CompletionParseError) as e:
                logger.warning(f"Relation extraction failed for batch {index}: {e}")
        return elements, relations

    with telemetry_stage("extraction"):
        settled = await run_in_waves(
            batches,
            extract_batch,
            wave_size=max(1, wave_size),
            delay_seconds=wave_delay_seconds,
            deadline=deadline,
            label="extraction batch",
        )

    for outcome, batch in zip(settled, batches):
        ids = [c.id for c in batch]
        if outcome.skipped:
            result.outcomes.append(
                BatchOutcome(stage="extraction", batch_index=outcome.index, chunk_ids=ids, succeeded=False, skipped=True)
            )
            continue
        if not outcome.succeeded or outcome.value is None:
            logger.warning(f"Extraction batch {outcome.index} failed, contributing no elements: {outcome.error}")
            result.outcomes.append(
                BatchOutcome(
                    stage="extraction",
                    batch_index=outcome.index,
                    chunk_ids=ids,
                    succeeded=False,
                    error=str(outcome.error),
                )
            )
            continue

        elements, relations = outcome.value
        result.entities.extend(elements)
        result.relations.extend(relations)
        result.outcomes.append(BatchOutcome(stage="extraction", batch_index=outcome.index, chunk_ids=ids))

    succeeded = sum(1 for o in result.outcomes if o.succeeded)
    logger.info(
        f"Extraction complete: {len(result.entities)} elements, {len(result.relations)} relations "
        f"from {succeeded}/{len(batches)} batches"
    )
    return result


async def extract_entities(
    chunks: list[StructuredChunk],
    source_name: str,
    config: ProcessingConfig,
    llm: "LLMProvider",
    **kwargs,
) -> list[RawEntityExtraction]:
    """
    Extract raw elements from all chunks, flattened across batches.

    Accepts the keyword arguments of ``extract_knowledge``.
    """
    result = await extract_knowledge(chunks, source_name, config, llm, **kwargs)
    return result.entities
