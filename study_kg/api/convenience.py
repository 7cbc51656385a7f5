"""
Convenience Functions

Top-level functions for common operations without explicit pipeline
instantiation. These are designed for quick scripts and REPL usage.

Example:
    >>> from study_kg import build_knowledge_graph_sync, chunk_document
    >>> chunks = chunk_document(text, max_tokens_per_chunk=800)
    >>> result = build_knowledge_graph_sync(text, source_name="lecture.pdf", total_pages=12)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from study_kg.config.settings import KGConfig
    from study_kg.providers.base import LLMProvider
    from study_kg.types import BuildResult, RawChunk


def _source(
    source_name: str,
    source_type: str,
    total_pages: int | None,
    duration: str | None,
):
    from study_kg.types import DocumentSource

    return DocumentSource(
        source_type=source_type,
        file_name=source_name,
        total_pages=total_pages,
        duration=duration,
    )


async def build_knowledge_graph(
    text: str,
    *,
    source_name: str = "document",
    source_type: str = "text",
    total_pages: int | None = None,
    duration: str | None = None,
    llm: "LLMProvider | None" = None,
    quality_llm: "LLMProvider | None" = None,
    config: "KGConfig | None" = None,
    **kwargs: Any,
) -> "BuildResult":
    """
    Build a knowledge graph for one document.

    Args:
        text: Extracted document text
        source_name: Display name of the document
        source_type: pdf, youtube, text, docx, image, audio or url
        total_pages: Page count, when known
        duration: Running time for media sources ("5:30", "1:30:45")
        llm: Provider to use (None = create from config)
        quality_llm: Provider for FULL_QUALITY extraction
        config: Pipeline configuration
        **kwargs: Additional arguments passed to KnowledgeGraphPipeline.run()
    """
    from study_kg.ingestion.pipeline import KnowledgeGraphPipeline

    if llm is None:
        pipeline = KnowledgeGraphPipeline.from_config(config)
    else:
        pipeline = KnowledgeGraphPipeline(llm, config=config, quality_llm=quality_llm)
    return await pipeline.run(
        text, _source(source_name, source_type, total_pages, duration), **kwargs
    )


def build_knowledge_graph_sync(text: str, **kwargs: Any) -> "BuildResult":
    """Synchronous version of build_knowledge_graph()."""
    return asyncio.run(build_knowledge_graph(text, **kwargs))


def chunk_document(
    text: str,
    *,
    max_tokens_per_chunk: int = 1200,
    overlap_tokens: int = 150,
    source_name: str = "document",
    source_type: str = "text",
    clean: bool = False,
) -> list["RawChunk"]:
    """Chunk text without calling a model."""
    from study_kg.ingestion.chunking import chunk_text, preprocess_text

    if clean and isinstance(text, str):
        text = preprocess_text(text)
    return chunk_text(
        text,
        max_tokens_per_chunk=max_tokens_per_chunk,
        overlap_tokens=overlap_tokens,
        source=_source(source_name, source_type, None, None),
    )
