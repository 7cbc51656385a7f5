"""
StudyKG - Document-to-Knowledge-Graph Pipeline

Turns extracted document text (PDF pages, transcripts, notes) into
structured chunks and a deduplicated knowledge graph for study tools.

Example:
    >>> from study_kg import build_knowledge_graph
    >>> result = await build_knowledge_graph(text, source_name="lecture.pdf")
    >>> print(len(result.graph.entities))

    >>> from study_kg import get_definitions
    >>> for entity in get_definitions(result.graph):
    ...     print(entity.name, entity.confidence)

Main Classes:
    KnowledgeGraphPipeline: One-shot orchestrator for a single document
    KGConfig: Configuration management

Pipeline Stages:
    chunk -> structure -> link -> select_config -> sample -> extract
    -> dedupe -> assemble
"""

__version__ = "0.1.0"


# Public API - lazy imports to avoid loading provider dependencies
def __getattr__(name: str):
    """Lazy import public API components."""

    if name == "KnowledgeGraphPipeline":
        from study_kg.ingestion.pipeline import KnowledgeGraphPipeline
        return KnowledgeGraphPipeline

    if name == "KGConfig":
        from study_kg.config.settings import KGConfig
        return KGConfig

    # Convenience functions
    if name in ("build_knowledge_graph", "build_knowledge_graph_sync", "chunk_document"):
        from study_kg.api import convenience
        return getattr(convenience, name)

    # Query utilities
    if name in (
        "get_entities",
        "get_definitions",
        "get_examples",
        "get_processes",
        "get_stats",
        "enrich_content_with_graph",
        "generate_knowledge_map",
    ):
        from study_kg import query
        return getattr(query, name)

    # Types
    if name in (
        "RawChunk",
        "StructuredChunk",
        "KnowledgeEntity",
        "KnowledgeRelation",
        "KnowledgeGraph",
        "ProcessingConfig",
    ):
        from study_kg import types
        return getattr(types, name)

    raise AttributeError(f"module 'study_kg' has no attribute {name!r}")


__all__ = [
    # Main classes
    "KnowledgeGraphPipeline",
    "KGConfig",

    # Convenience functions
    "build_knowledge_graph",
    "build_knowledge_graph_sync",
    "chunk_document",

    # Query utilities
    "get_entities",
    "get_definitions",
    "get_examples",
    "get_processes",
    "get_stats",
    "enrich_content_with_graph",
    "generate_knowledge_map",

    # Types
    "RawChunk",
    "StructuredChunk",
    "KnowledgeEntity",
    "KnowledgeRelation",
    "KnowledgeGraph",
    "ProcessingConfig",

    # Version
    "__version__",
]
