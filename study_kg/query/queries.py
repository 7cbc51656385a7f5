"""
Graph Query Utilities

Read-only accessors over an assembled KnowledgeGraph for downstream
content generators (flashcards, quizzes, notes, summaries).

Example:
    >>> definitions = get_definitions(graph)
    >>> prompt = enrich_content_with_graph(base_prompt, graph, "flashcards")
"""

from __future__ import annotations

from collections import Counter
from typing import Literal

from pydantic import BaseModel, Field

from study_kg.types import EntityType, GraphStats, KnowledgeEntity, KnowledgeGraph

ContentType = Literal["flashcards", "quiz", "notes", "summary"]

ENRICHMENT_HEADER = "ADDITIONAL CONTEXT FROM KNOWLEDGE GRAPH:"
NO_DESCRIPTION = "No description"


class EntityFilter(BaseModel):
    """Filter for ``get_entities``; unset fields do not filter."""

    types: list[EntityType] | None = Field(default=None, description="Keep only these types")
    categories: list[str] | None = Field(default=None, description="Keep only these categories")
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    max_results: int | None = Field(default=None, ge=0)


def get_entities(
    graph: KnowledgeGraph,
    filter: EntityFilter | None = None,
) -> list[KnowledgeEntity]:
    """
    Filtered entities sorted by descending confidence.

    Entities of equal confidence keep their graph insertion order.
    """
    filter = filter or EntityFilter()
    entities = list(graph.entities.values())

    if filter.types is not None:
        wanted = set(filter.types)
        entities = [e for e in entities if e.type in wanted]
    if filter.categories is not None:
        categories = set(filter.categories)
        entities = [e for e in entities if e.category and e.category in categories]
    if filter.min_confidence is not None:
        entities = [e for e in entities if e.confidence >= filter.min_confidence]

    entities.sort(key=lambda e: e.confidence, reverse=True)

    if filter.max_results is not None:
        entities = entities[: filter.max_results]
    return entities


def get_definitions(graph: KnowledgeGraph) -> list[KnowledgeEntity]:
    """Definitions and concepts with confidence >= 0.7 (at most 50)."""
    return get_entities(
        graph,
        EntityFilter(
            types=[EntityType.DEFINITION, EntityType.CONCEPT],
            min_confidence=0.7,
            max_results=50,
        ),
    )


def get_examples(graph: KnowledgeGraph) -> list[KnowledgeEntity]:
    """Entities carrying examples, confidence >= 0.6 (at most 30)."""
    candidates = get_entities(graph, EntityFilter(min_confidence=0.6))
    return [e for e in candidates if e.properties.get("examples")][:30]


def get_processes(graph: KnowledgeGraph) -> list[KnowledgeEntity]:
    """Processes and methods with confidence >= 0.7 (at most 20)."""
    return get_entities(
        graph,
        EntityFilter(
            types=[EntityType.PROCESS, EntityType.METHOD],
            min_confidence=0.7,
            max_results=20,
        ),
    )


def get_stats(graph: KnowledgeGraph) -> GraphStats:
    """Counts by type and category plus average confidence."""
    entities = list(graph.entities.values())
    by_type = Counter(e.type.value for e in entities)
    by_category = Counter(e.category or "unknown" for e in entities)
    average = sum(e.confidence for e in entities) / len(entities) if entities else 0.0
    return GraphStats(
        total_entities=len(entities),
        total_relations=len(graph.relations),
        entities_by_type=dict(by_type),
        entities_by_category=dict(by_category),
        average_confidence=round(average, 4),
    )


def _relevant_entities(graph: KnowledgeGraph, content_type: ContentType) -> list[KnowledgeEntity]:
    if content_type == "flashcards":
        groups = [
            get_definitions(graph),
            get_entities(graph, EntityFilter(types=[EntityType.CONCEPT], max_results=20)),
        ]
    elif content_type == "quiz":
        groups = [get_definitions(graph), get_examples(graph), get_processes(graph)]
    elif content_type == "notes":
        groups = [get_entities(graph, EntityFilter(max_results=40))]
    elif content_type == "summary":
        groups = [get_entities(graph, EntityFilter(min_confidence=0.8, max_results=25))]
    else:
        raise ValueError(f"Unknown content type: {content_type!r}")

    seen: set[str] = set()
    unique: list[KnowledgeEntity] = []
    for group in groups:
        for entity in group:
            if entity.id not in seen:
                seen.add(entity.id)
                unique.append(entity)
    return unique


def enrich_content_with_graph(
    base_text: str,
    graph: KnowledgeGraph,
    content_type: ContentType,
) -> str:
    """
    Append a digest of the entities relevant to ``content_type``.

    One ``name: description`` line per entity follows a header line. The
    base text is returned unchanged when no entity is relevant.

    Raises:
        ValueError: If ``content_type`` is not recognised
    """
    entities = _relevant_entities(graph, content_type)
    if not entities:
        return base_text

    lines = [
        f"{e.name}: {e.descriptions[0] if e.descriptions and e.descriptions[0] else NO_DESCRIPTION}"
        for e in entities
    ]
    return f"{base_text}\n\n{ENRICHMENT_HEADER}\n" + "\n".join(lines)
