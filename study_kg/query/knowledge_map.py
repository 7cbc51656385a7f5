"""
Knowledge Map

Hierarchical node/edge layout of a graph for mind-map style rendering:
a root node for the document, one category node per non-empty type bucket
at a fixed position, and entity nodes on a spiral around their category.

Entities are taken by descending confidence with per-bucket caps
(conservative by default, larger in ``show_all_entities`` mode with more
than 100 nodes), and the node list is truncated to ``max_nodes``; edges
survive only if both ends do.
"""

from __future__ import annotations

import logging
import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from study_kg.types import EntityType, KnowledgeEntity, KnowledgeGraph

logger = logging.getLogger(__name__)

AGGRESSIVE_MODE_MIN_NODES = 100


class MapNode(BaseModel):
    """One node of the knowledge map."""

    id: str
    title: str
    level: int = Field(..., ge=0, le=2)
    importance: Literal["low", "medium", "high"] = "high"
    category: str | None = None
    connections: list[str] = Field(default_factory=list)
    x: float = 0.0
    y: float = 0.0


class MapEdge(BaseModel):
    """Directed edge; ``type`` is "hierarchy" or a relation label."""

    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    type: str = "hierarchy"

    model_config = ConfigDict(populate_by_name=True)


class KnowledgeMap(BaseModel):
    """Renderable map of one graph."""

    title: str
    description: str
    nodes: list[MapNode] = Field(default_factory=list)
    edges: list[MapEdge] = Field(default_factory=list)
    total_concepts: int = 0
    categories: list[str] = Field(default_factory=list)


class _Bucket(BaseModel):
    id: str
    title: str
    types: tuple[EntityType, ...]
    x: float
    y: float
    conservative_cap: int
    aggressive_cap: int


_BUCKETS = (
    _Bucket(id="concepts", title="Concepts", types=(EntityType.CONCEPT,), x=-400, y=-300, conservative_cap=15, aggressive_cap=60),
    _Bucket(id="definitions", title="Definitions", types=(EntityType.DEFINITION,), x=400, y=-300, conservative_cap=10, aggressive_cap=40),
    _Bucket(id="processes", title="Processes", types=(EntityType.PROCESS,), x=-400, y=0, conservative_cap=10, aggressive_cap=30),
    _Bucket(id="methods", title="Methods", types=(EntityType.METHOD,), x=400, y=0, conservative_cap=8, aggressive_cap=25),
    _Bucket(id="principles", title="Principles", types=(EntityType.PRINCIPLE,), x=-400, y=300, conservative_cap=8, aggressive_cap=20),
    _Bucket(id="tools", title="Tools", types=(EntityType.TOOL,), x=400, y=300, conservative_cap=8, aggressive_cap=15),
    _Bucket(
        id="entities",
        title="Entities",
        types=(EntityType.PERSON, EntityType.PLACE, EntityType.ORGANIZATION, EntityType.EVENT),
        x=0,
        y=-400,
        conservative_cap=15,
        aggressive_cap=30,
    ),
)


def _importance(confidence: float) -> Literal["low", "medium", "high"]:
    if confidence > 0.8:
        return "high"
    if confidence > 0.6:
        return "medium"
    return "low"


def _spiral_position(bucket: _Bucket, index: int, count: int) -> tuple[float, float]:
    angle = (index / count) * 4 * math.pi
    radius = 150 + index * 10
    return (
        round(bucket.x + math.cos(angle) * radius, 2),
        round(bucket.y + math.sin(angle) * radius, 2),
    )


def generate_knowledge_map(
    graph: KnowledgeGraph,
    max_nodes: int = 50,
    show_all_entities: bool = False,
) -> KnowledgeMap:
    """
    Lay out ``graph`` as a hierarchical knowledge map.

    Args:
        graph: Assembled knowledge graph
        max_nodes: Node limit applied after the full layout is built
        show_all_entities: Use the larger per-bucket caps (needs max_nodes > 100)

    Returns:
        KnowledgeMap with nodes, edges and the non-empty category titles
    """
    aggressive = show_all_entities and max_nodes > AGGRESSIVE_MODE_MIN_NODES
    ranked = sorted(graph.entities.values(), key=lambda e: e.confidence, reverse=True)

    filled: list[tuple[_Bucket, list[KnowledgeEntity]]] = []
    for bucket in _BUCKETS:
        cap = bucket.aggressive_cap if aggressive else bucket.conservative_cap
        members = [e for e in ranked if e.type in bucket.types][:cap]
        if members:
            filled.append((bucket, members))

    source = graph.metadata.source_name
    nodes: list[MapNode] = [
        MapNode(
            id="root",
            title=source,
            level=0,
            connections=[bucket.id for bucket, _ in filled],
        )
    ]
    edges: list[MapEdge] = []

    for bucket, members in filled:
        nodes.append(
            MapNode(
                id=bucket.id,
                title=f"{bucket.title} ({len(members)})",
                level=1,
                connections=[e.id for e in members],
                x=bucket.x,
                y=bucket.y,
            )
        )
        edges.append(MapEdge(from_id="root", to_id=bucket.id))

        for index, entity in enumerate(members):
            x, y = _spiral_position(bucket, index, len(members))
            nodes.append(
                MapNode(
                    id=entity.id,
                    title=entity.name,
                    level=2,
                    category=bucket.title,
                    importance=_importance(entity.confidence),
                    x=x,
                    y=y,
                )
            )
            edges.append(MapEdge(from_id=bucket.id, to_id=entity.id))

    for relation in graph.relations.values():
        edges.append(MapEdge(from_id=relation.from_id, to_id=relation.to_id, type=relation.type))

    final_nodes = nodes[: max(0, max_nodes)]
    kept = {n.id for n in final_nodes}
    final_edges = [e for e in edges if e.from_id in kept and e.to_id in kept]

    result = KnowledgeMap(
        title=f"Knowledge Map: {source}",
        description=(
            f"Map with {min(len(graph.entities), max_nodes)} concepts from "
            f"{graph.metadata.total_chunks} document sections"
        ),
        nodes=final_nodes,
        edges=final_edges,
        total_concepts=len(graph.entities),
        categories=[bucket.title for bucket, _ in filled],
    )
    logger.info(
        f"Generated knowledge map: {len(result.nodes)} nodes, {len(result.edges)} edges "
        f"from {len(graph.entities)} entities"
    )
    return result
