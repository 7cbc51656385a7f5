"""
Rule-Based Emergency Graph

Builds a minimal graph from structured chunks with string heuristics only,
for when the model-backed stages cannot produce one.

Entities come from each chunk's detailed concepts (confidence 0.85) or,
for chunks without concepts, from key ideas longer than 10 characters
(confidence 0.7, name cut to 50 characters). The graph is marked with
version "rule-based".
"""

from __future__ import annotations

import logging

from study_kg.ingestion.assembly.assembler import Assembler
from study_kg.ingestion.resolution.entity_dedup import dedupe_entities
from study_kg.types import KnowledgeGraph, RawEntityExtraction, StructuredChunk
from study_kg.types.graph import RULE_BASED_VERSION

logger = logging.getLogger(__name__)

CONCEPT_CONFIDENCE = 0.85
KEY_IDEA_CONFIDENCE = 0.7
MAX_FALLBACK_CHUNKS = 20
_MIN_IDEA_LENGTH = 10
_MAX_IDEA_NAME = 50
_MAX_DESCRIPTION = 100


def rule_based_entities(chunk: StructuredChunk) -> list[RawEntityExtraction]:
    """Entity candidates for one chunk from its concepts or key ideas."""
    entities = [
        RawEntityExtraction(
            name=concept.concept.strip(),
            type="concept",
            desc=concept.explanation[:_MAX_DESCRIPTION],
            cat=concept.category or "General",
            conf=CONCEPT_CONFIDENCE,
            source_chunks=[chunk.id],
            examples=concept.examples,
        )
        for concept in chunk.detailed_concepts
        if concept.concept.strip()
    ]
    if entities:
        return entities

    return [
        RawEntityExtraction(
            name=idea[:_MAX_IDEA_NAME].strip(),
            type="concept",
            desc=idea,
            cat="General",
            conf=KEY_IDEA_CONFIDENCE,
            source_chunks=[chunk.id],
        )
        for idea in chunk.key_ideas[:3]
        if len(idea) > _MIN_IDEA_LENGTH
    ]


def build_rule_based_graph(
    chunks: list[StructuredChunk],
    source_name: str,
    *,
    max_chunks: int = MAX_FALLBACK_CHUNKS,
) -> KnowledgeGraph:
    """
    Build the emergency graph from the first ``max_chunks`` chunks.

    Never calls a model; the result always has version "rule-based".
    """
    selected = sorted(chunks, key=lambda c: c.order)[:max_chunks]
    raw = [entity for chunk in selected for entity in rule_based_entities(chunk)]
    entities = dedupe_entities(raw, confidence_threshold=0.0)

    graph = Assembler().assemble(entities, source_name=source_name, total_chunks=len(chunks))
    graph.metadata.version = RULE_BASED_VERSION
    logger.warning(
        f"Rule-based graph for {source_name!r}: {len(graph.entities)} entities "
        f"from {len(selected)} chunks"
    )
    return graph
