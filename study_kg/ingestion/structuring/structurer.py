"""
Chunk Structurer

Turns raw chunks into structured chunks (summary, key ideas, concepts,
chunk type, importance) with one completion request per batch.

Batches run in waves of bounded concurrency. A batch whose request fails
or whose reply cannot be validated falls back to a deterministic summary
built from the chunk's own sentences, so structuring always returns one
StructuredChunk per RawChunk in document order.

A document that is a single very small chunk skips the model entirely.

Example:
    >>> chunks = await structure_chunks(raw_chunks, llm, source=source)
    >>> chunks[0].summary
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from study_kg.exceptions import CompletionParseError, CompletionRequestError
from study_kg.providers.completion import request_json
from study_kg.types.chunks import ChunkMetadata, DocumentSource, RawChunk, StructuredChunk
from study_kg.types.results import BatchOutcome, ChunkStructure, StructuringResponse
from study_kg.utils.batching import chunked, run_in_waves
from study_kg.utils.cost_telemetry import telemetry_stage
from study_kg.utils.text import split_sentences, truncate
from study_kg.utils.token_count import estimate_tokens

if TYPE_CHECKING:
    from study_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

MIN_CHUNK_TOKENS = 80
MAX_KEY_IDEAS = 5
MAX_DETAILED_CONCEPTS = 3
_RESPONSE_TOKENS_PER_CHUNK = 700
_WORDS_PER_IDEA = 8


# -----------------------------------------------------------------------------
# LLM Prompts
# -----------------------------------------------------------------------------

_STRUCTURING_SYSTEM_PROMPT = """\
You are an expert in analysing academic and educational texts. You extract
structured information from document sections precisely, in a form that is
useful to students preparing notes, flashcards and quizzes.

For every section you return:
- summary: 1-3 sentences describing what the section contains. Do not refer
  to it as a "fragment" or "section"; describe the content itself.
- keyIdeas: the 3-5 most important facts or ideas.
- detailedConcepts: the 1-3 most complex concepts that need explanation,
  each with concept, explanation, optional examples and category.
- title: a descriptive, specific title.
- chunkType: one of definition, example, procedure, conclusion,
  introduction, analysis.
- importance: high, medium or low, based on how essential the section is
  for understanding the whole document.
- dependencies: concepts from earlier sections the reader must already know.

Respond with a single JSON object and nothing else."""

_STRUCTURING_USER_TEMPLATE = """\
DOCUMENT CONTEXT:
- Source type: {source_type}
- File name: {file_name}
- Total sections in document: {total_chunks}

SECTIONS TO ANALYSE:
{sections}

Return JSON of the form:
{{
  "chunks": [
    {{
      "index": 0,
      "summary": "...",
      "keyIdeas": ["..."],
      "detailedConcepts": [
        {{"concept": "...", "explanation": "...", "examples": ["..."], "category": "..."}}
      ],
      "title": "...",
      "chunkType": "definition|example|procedure|conclusion|introduction|analysis",
      "importance": "high|medium|low",
      "dependencies": ["..."]
    }}
  ]
}}

Return exactly {count} entries, one per section, with "index" set to the
section's INDEX value."""

_SECTION_TEMPLATE = """\
=== INDEX {index}: section {position}/{total}{position_context} ===
{content}"""


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def optimal_batch_size(raw_chunks: list[RawChunk]) -> int:
    """
    Choose chunks per structuring request from the average chunk size.

    Small chunks are batched aggressively; large ones two at a time.
    """
    if not raw_chunks:
        return 1
    avg_tokens = sum(estimate_tokens(c.content) for c in raw_chunks) / len(raw_chunks)
    if avg_tokens < 400:
        return 4
    if avg_tokens < 800:
        return 3
    return 2


def position_context(order: int, total: int) -> str:
    """Positional hint for the prompt: introduction, conclusion or middle."""
    if order == 0:
        return " (introduction/opening)"
    if order == total - 1:
        return " (conclusion/ending)"
    return " (middle section)"


def chunk_id(order: int) -> str:
    """Stable id for the chunk at ``order``."""
    return f"chunk-{order}"


def rule_based_chunk(raw: RawChunk, *, title: str | None = None) -> StructuredChunk:
    """
    Deterministic structure built from the chunk's own sentences.

    Summary is the first sentence, cut to 100 characters with "..." when
    longer; key ideas are the first three sentences cut to 80 characters.
    """
    sentences = split_sentences(raw.content, min_length=10)
    lead = sentences[0] if sentences else raw.content.strip()
    summary = truncate(lead, 100, suffix="...")
    return StructuredChunk(
        id=chunk_id(raw.order),
        summary=summary,
        key_ideas=[s[:80] for s in sentences[:3]],
        title=title or f"Section {raw.order + 1}",
        raw_text=raw.content,
        order=raw.order,
        token_count=estimate_tokens(raw.content),
        metadata=ChunkMetadata(chunk_type="analysis", importance="medium"),
    )


def quick_structure(raw: RawChunk, *, title: str | None = None) -> StructuredChunk:
    """
    Local structure for trivially small input.

    Summary is the first sentence; key ideas are consecutive word groups.
    """
    sentences = split_sentences(raw.content)
    words = raw.content.split()
    ideas = [
        " ".join(words[i : i + _WORDS_PER_IDEA])
        for i in range(0, min(len(words), _WORDS_PER_IDEA * 3), _WORDS_PER_IDEA)
    ]
    summary = sentences[0] if sentences else raw.content.strip()
    return StructuredChunk(
        id=chunk_id(raw.order),
        summary=truncate(summary, 200, suffix="..."),
        key_ideas=ideas,
        title=title or f"Section {raw.order + 1}",
        raw_text=raw.content,
        order=raw.order,
        token_count=estimate_tokens(raw.content),
        metadata=ChunkMetadata(chunk_type="analysis", importance="medium"),
    )


def _from_response(raw: RawChunk, entry: ChunkStructure) -> StructuredChunk:
    """Build a StructuredChunk from a validated response entry."""
    summary = entry.summary.strip()
    if not summary:
        return rule_based_chunk(raw, title=entry.title)
    return StructuredChunk(
        id=chunk_id(raw.order),
        summary=summary,
        key_ideas=entry.key_ideas[:MAX_KEY_IDEAS],
        detailed_concepts=[c for c in entry.detailed_concepts if c.concept.strip()][
            :MAX_DETAILED_CONCEPTS
        ],
        title=(entry.title or "").strip() or f"Section {raw.order + 1}",
        dependencies=entry.dependencies,
        raw_text=raw.content,
        order=raw.order,
        token_count=estimate_tokens(raw.content),
        metadata=ChunkMetadata(
            chunk_type=entry.chunk_type or "analysis",
            importance=entry.importance or "medium",
        ),
    )


def _match_entries(
    batch: list[RawChunk],
    response: StructuringResponse,
) -> list[ChunkStructure | None]:
    """
    Align response entries with batch chunks.

    Entries carrying a valid ``index`` are matched by it; otherwise
    entries are matched by position. Unmatched chunks get None.
    """
    by_order = {raw.order: pos for pos, raw in enumerate(batch)}
    matched: list[ChunkStructure | None] = [None] * len(batch)

    indexed = [e for e in response.chunks if e.index is not None and e.index in by_order]
    if indexed:
        for entry in indexed:
            pos = by_order[entry.index]
            if matched[pos] is None:
                matched[pos] = entry
        return matched

    for pos, entry in enumerate(response.chunks[: len(batch)]):
        matched[pos] = entry
    return matched


def _build_prompt(batch: list[RawChunk], total: int, source: DocumentSource) -> str:
    sections = "\n\n".join(
        _SECTION_TEMPLATE.format(
            index=raw.order,
            position=raw.order + 1,
            total=total,
            position_context=position_context(raw.order, total),
            content=raw.content,
        )
        for raw in batch
    )
    return _STRUCTURING_USER_TEMPLATE.format(
        source_type=source.source_type,
        file_name=source.file_name,
        total_chunks=total,
        sections=sections,
        count=len(batch),
    )


# -----------------------------------------------------------------------------
# Batch Structuring with Concurrency
# -----------------------------------------------------------------------------


async def structure_chunks(
    raw_chunks: list[RawChunk],
    llm: "LLMProvider",
    *,
    source: DocumentSource | None = None,
    batch_size: int | None = None,
    concurrency: int = 3,
    min_chunk_tokens: int = MIN_CHUNK_TOKENS,
    wave_delay_seconds: float = 0.1,
    timeout: float | None = 60.0,
    outcomes: list[BatchOutcome] | None = None,
) -> list[StructuredChunk]:
    """
    Structure raw chunks in batched completion requests.

    Args:
        raw_chunks: Chunker output
        llm: Provider used for structuring
        source: Source metadata shown to the model
        batch_size: Chunks per request (None = choose from chunk size)
        concurrency: Requests in flight per wave
        min_chunk_tokens: A lone chunk below this size is structured locally
        wave_delay_seconds: Pause between waves
        timeout: Per-request timeout in seconds
        outcomes: Optional list that receives one BatchOutcome per batch

    Returns:
        One StructuredChunk per raw chunk, sorted by order
    """
    if not raw_chunks:
        return []

    source = source or DocumentSource()
    total = len(raw_chunks)

    if total == 1 and estimate_tokens(raw_chunks[0].content) < min_chunk_tokens:
        logger.info("Single small chunk: structuring locally without a model call")
        if outcomes is not None:
            outcomes.append(
                BatchOutcome(stage="structuring", batch_index=0, chunk_ids=[chunk_id(raw_chunks[0].order)])
            )
        return [quick_structure(raw_chunks[0])]

    size = batch_size or optimal_batch_size(raw_chunks)
    batches = chunked(raw_chunks, max(1, size))
    logger.info(f"Structuring {total} chunks in {len(batches)} batches of up to {size}")

    async def structure_batch(index: int, batch: list[RawChunk]) -> list[StructuredChunk]:
        prompt = _build_prompt(batch, total, source)
        response = await request_json(
            llm,
            prompt,
            StructuringResponse,
            system=_STRUCTURING_SYSTEM_PROMPT,
            temperature=0.3,
            max_tokens=_RESPONSE_TOKENS_PER_CHUNK * len(batch) + 200,
            timeout=timeout,
        )
        entries = _match_entries(batch, response)
        missing = sum(1 for e in entries if e is None)
        if missing:
            logger.warning(
                f"Structuring batch {index}: {missing}/{len(batch)} chunk(s) missing from reply, "
                "using rule-based summaries for them"
            )
        return [
            _from_response(raw, entry) if entry is not None else rule_based_chunk(raw)
            for raw, entry in zip(batch, entries)
        ]

    with telemetry_stage("structuring"):
        settled = await run_in_waves(
            batches,
            structure_batch,
            wave_size=max(1, concurrency),
            delay_seconds=wave_delay_seconds,
            label="structuring batch",
        )

    structured: list[StructuredChunk] = []
    for outcome, batch in zip(settled, batches):
        ids = [chunk_id(raw.order) for raw in batch]
        if outcome.succeeded and outcome.value is not None:
            structured.extend(outcome.value)
            record = BatchOutcome(stage="structuring", batch_index=outcome.index, chunk_ids=ids)
        else:
            error = outcome.error
            if isinstance(error, (CompletionRequestError, CompletionParseError)):
                logger.warning(f"Structuring batch {outcome.index} failed, using fallback: {error}")
            else:
                logger.warning(
                    f"Structuring batch {outcome.index} failed unexpectedly, using fallback: {error!r}"
                )
            structured.extend(rule_based_chunk(raw) for raw in batch)
            record = BatchOutcome(
                stage="structuring",
                batch_index=outcome.index,
                chunk_ids=ids,
                succeeded=False,
                error=str(error),
            )
        if outcomes is not None:
            outcomes.append(record)

    structured.sort(key=lambda c: c.order)
    return structured
