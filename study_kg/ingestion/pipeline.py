"""
Knowledge Graph Pipeline

One-shot, linear document-to-graph pipeline:

    Chunker -> Structurer -> Linker -> Config -> Sampler
            -> Extractor -> Deduplicator -> Assembler

Each ``run()`` creates its own PipelineContext (timing, batch outcomes,
errors, cost collector); nothing is shared between runs, so one pipeline
instance can serve concurrent requests.

Failure policy:
    - Recoverable batch failures are handled inside each stage
    - Any other failure after chunking yields the rule-based emergency graph
    - Only a chunking failure (or a failing emergency path) raises
      PipelineError

Example:
    >>> from study_kg.providers import create_llm_provider
    >>> pipeline = KnowledgeGraphPipeline(create_llm_provider(config), config=config)
    >>> result = await pipeline.run(text, DocumentSource(file_name="notes.pdf", source_type="pdf"))
    >>> print(f"{len(result.graph.entities)} entities")
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from study_kg.config.settings import KGConfig
from study_kg.exceptions import PipelineError
from study_kg.ingestion.assembly import Assembler, build_rule_based_graph
from study_kg.ingestion.chunking import chunk_text, preprocess_text, refine_chunk_metadata
from study_kg.ingestion.extraction import extract_knowledge
from study_kg.ingestion.planning import sample_chunks, select_config
from study_kg.ingestion.resolution import dedupe_entities, merge_relations
from study_kg.ingestion.structuring import link_chunks, rule_based_chunk, structure_chunks
from study_kg.types import (
    BatchOutcome,
    BuildResult,
    DocumentSource,
    ProcessingMode,
    RawChunk,
    StructuredChunk,
)
from study_kg.utils.cost_telemetry import CostCollector, telemetry_collector

if TYPE_CHECKING:
    from study_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


@dataclass
class PipelineContext:
    """State owned by a single pipeline run."""

    source: DocumentSource
    started: float = field(default_factory=time.monotonic)
    batches: list[BatchOutcome] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    collector: CostCollector | None = None
    on_progress: ProgressCallback | None = None

    def report(self, stage: str, progress: float) -> None:
        if self.on_progress:
            self.on_progress(stage, progress)

    def deadline_for(self, target_minutes: float) -> float:
        return self.started + target_minutes * 60

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


class KnowledgeGraphPipeline:
    """
    Turns extracted document text into a KnowledgeGraph.

    Usage:
        pipeline = KnowledgeGraphPipeline(llm, config=KGConfig())
        result = await pipeline.run(text, source)
    """

    def __init__(
        self,
        llm: "LLMProvider",
        *,
        config: KGConfig | None = None,
        quality_llm: "LLMProvider | None" = None,
    ):
        """
        Args:
            llm: Provider for structuring and bulk extraction
            config: Pipeline configuration (defaults read the environment)
            quality_llm: Provider for FULL_QUALITY extraction (defaults to ``llm``)
        """
        self._llm = llm
        self._quality_llm = quality_llm or llm
        self._config = config or KGConfig()

    @classmethod
    def from_config(cls, config: KGConfig | None = None) -> "KnowledgeGraphPipeline":
        """Create a pipeline with the configured bulk and quality providers."""
        from study_kg.providers import create_llm_provider

        config = config or KGConfig()
        return cls(
            create_llm_provider(config),
            config=config,
            quality_llm=create_llm_provider(config, quality=True),
        )

    @property
    def config(self) -> KGConfig:
        return self._config

    # === Stages ===

    def chunk(self, text: str, source: DocumentSource) -> list[RawChunk]:
        """
        Chunk ``text`` with the configured budgets.

        Raises:
            PipelineError: If chunking fails unexpectedly
        """
        try:
            if self._config.clean_text and isinstance(text, str):
                text = preprocess_text(text)
            return chunk_text(
                text,
                max_tokens_per_chunk=self._config.max_tokens_per_chunk,
                overlap_tokens=self._config.overlap_tokens,
                source=source,
            )
        except Exception as e:
            logger.error(f"Chunking failed for {source.file_name!r}: {e}")
            raise PipelineError(f"Chunking failed: {e}", stage="chunking") from e

    async def _build(
        self,
        raw_chunks: list[RawChunk],
        ctx: PipelineContext,
        structured_out: list[StructuredChunk],
    ) -> BuildResult:
        cfg = self._config
        source = ctx.source

        ctx.report("structuring", 0.0)
        structured = await structure_chunks(
            raw_chunks,
            self._llm,
            source=source,
            batch_size=cfg.structuring_batch_size,
            concurrency=cfg.structuring_concurrency,
            min_chunk_tokens=cfg.min_chunk_tokens,
            wave_delay_seconds=cfg.wave_delay_seconds,
            timeout=cfg.request_timeout_seconds,
            outcomes=ctx.batches,
        )
        structured = refine_chunk_metadata(structured, source)
        link_chunks(structured)
        structured_out.extend(structured)
        ctx.report("structuring", 1.0)

        processing = select_config(structured, source.total_pages)
        selected = sample_chunks(structured, processing.max_chunks_to_process)
        full_quality = processing.processing_mode == ProcessingMode.FULL_QUALITY
        deadline = (
            ctx.deadline_for(processing.target_time_minutes) if cfg.enforce_time_budget else None
        )

        ctx.report("extraction", 0.0)
        extraction = await extract_knowledge(
            selected,
            source.file_name,
            processing,
            self._llm,
            quality_llm=self._quality_llm,
            concurrency=cfg.extraction_concurrency_for(full_quality),
            wave_delay_seconds=cfg.wave_delay_seconds,
            timeout=cfg.request_timeout_seconds,
            deadline=deadline,
            with_relations=cfg.extract_relations,
        )
        ctx.batches.extend(extraction.outcomes)
        ctx.report("extraction", 1.0)

        attempted = [o for o in extraction.outcomes if not o.skipped]
        if attempted and not any(o.succeeded for o in attempted):
            ctx.errors.append("Every extraction batch failed; using rule-based graph")
            logger.warning(f"All {len(attempted)} extraction batches failed, building rule-based graph")
            graph = build_rule_based_graph(structured, source.file_name)
            return BuildResult(graph=graph, chunks=structured, config=processing, used_fallback=True)

        ctx.report("deduplication", 0.0)
        entities = dedupe_entities(extraction.entities, processing.confidence_threshold)
        relations = merge_relations(extraction.relations, entities) if extraction.relations else []
        ctx.report("deduplication", 1.0)

        ctx.report("assembly", 0.0)
        graph = Assembler().assemble(
            entities,
            relations,
            source_name=source.file_name,
            total_chunks=len(structured),
            config=processing,
        )
        ctx.report("assembly", 1.0)

        if processing.expected_entities:
            logger.info(f"Entities: {len(graph.entities)} (target: {processing.expected_entities})")
        return BuildResult(graph=graph, chunks=structured, config=processing)

    def _emergency(
        self,
        raw_chunks: list[RawChunk],
        structured: list[StructuredChunk],
        ctx: PipelineContext,
    ) -> BuildResult:
        try:
            chunks = structured or [rule_based_chunk(raw) for raw in raw_chunks]
            graph = build_rule_based_graph(chunks, ctx.source.file_name)
        except Exception as e:
            logger.error(f"Emergency fallback failed for {ctx.source.file_name!r}: {e}")
            raise PipelineError(f"Emergency fallback failed: {e}", stage="fallback") from e
        return BuildResult(graph=graph, chunks=chunks, used_fallback=True)

    # === Entry Points ===

    async def run(
        self,
        text: str,
        source: DocumentSource | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> BuildResult:
        """
        Build a knowledge graph for one document.

        Args:
            text: Extracted document text
            source: Source metadata (type, file name, pages, duration)
            on_progress: Optional callback receiving (stage, progress 0..1)

        Returns:
            BuildResult with the graph, structured chunks and diagnostics

        Raises:
            PipelineError: If chunking fails or the emergency fallback cannot run
        """
        source = source or DocumentSource()
        ctx = PipelineContext(
            source=source,
            collector=(
                CostCollector(warn_threshold_usd=self._config.cost_debug_warn_threshold_usd)
                if self._config.cost_debug
                else None
            ),
            on_progress=on_progress,
        )

        logger.info(f"Building knowledge graph for {source.file_name!r} ({source.source_type})")
        ctx.report("chunking", 0.0)
        raw_chunks = self.chunk(text, source)
        ctx.report("chunking", 1.0)
        logger.info(f"Chunked into {len(raw_chunks)} chunks")

        if not raw_chunks:
            graph = Assembler().assemble([], source_name=source.file_name)
            return BuildResult(graph=graph, duration_seconds=ctx.elapsed)

        structured: list[StructuredChunk] = []
        scope: Any = telemetry_collector(ctx.collector) if ctx.collector else nullcontext()
        with scope:
            try:
                result = await self._build(raw_chunks, ctx, structured)
            except Exception as e:
                logger.error(f"Pipeline failed for {source.file_name!r}, using emergency fallback: {e}")
                ctx.errors.append(f"{type(e).__name__}: {e}")
                result = self._emergency(raw_chunks, structured, ctx)

        result.batches = ctx.batches
        result.errors = ctx.errors + result.errors
        result.duration_seconds = ctx.elapsed
        if ctx.collector is not None:
            result.cost = ctx.collector.summary()

        logger.info(
            f"Graph built in {result.duration_seconds:.1f}s: {len(result.graph.entities)} entities, "
            f"{len(result.failed_batches)} failed batch(es)"
            + (" [rule-based fallback]" if result.used_fallback else "")
        )
        return result

    def run_sync(self, text: str, source: DocumentSource | None = None, **kwargs: Any) -> BuildResult:
        """Synchronous version of run()."""
        return asyncio.run(self.run(text, source, **kwargs))
