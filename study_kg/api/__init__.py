"""
Public API Layer

User-facing convenience functions.

Modules:
    convenience: build_knowledge_graph, build_knowledge_graph_sync, chunk_document

Design Principles:
    - Async-first with sync wrappers (_sync suffix)
    - Providers created from KGConfig unless passed explicitly
"""

from study_kg.api.convenience import (
    build_knowledge_graph,
    build_knowledge_graph_sync,
    chunk_document,
)

__all__ = ["build_knowledge_graph", "build_knowledge_graph_sync", "chunk_document"]
