"""
Graph Queries

Read-only access to an assembled KnowledgeGraph.

Modules:
    queries: Filtered entity lookups, stats and prompt enrichment
    knowledge_map: Hierarchical node/edge layout for map rendering

Example:
    >>> from study_kg.query import get_definitions, generate_knowledge_map
    >>> for entity in get_definitions(graph):
    ...     print(entity.name)
    >>> print(generate_knowledge_map(graph).model_dump_json(by_alias=True))
"""

from study_kg.query.knowledge_map import KnowledgeMap, MapEdge, MapNode, generate_knowledge_map
from study_kg.query.queries import (
    ContentType,
    EntityFilter,
    enrich_content_with_graph,
    get_definitions,
    get_entities,
    get_examples,
    get_processes,
    get_stats,
)

__all__ = [
    "EntityFilter",
    "ContentType",
    "get_entities",
    "get_definitions",
    "get_examples",
    "get_processes",
    "get_stats",
    "enrich_content_with_graph",
    "generate_knowledge_map",
    "KnowledgeMap",
    "MapNode",
    "MapEdge",
]
