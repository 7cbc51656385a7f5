"""
Relation Merging

Resolves raw relation endpoints to deduplicated entities and merges
relations sharing ``(from, type, to)`` with the entity confidence rule.
Relations with an endpoint that is not in the entity set are dropped.
"""

from __future__ import annotations

import logging

from study_kg.ingestion.resolution.entity_dedup import merged_confidence
from study_kg.types.entities import KnowledgeEntity, KnowledgeRelation, RawRelationExtraction
from study_kg.utils.text import normalize_name

logger = logging.getLogger(__name__)


def build_name_index(entities: list[KnowledgeEntity]) -> dict[str, str]:
    """
    Map normalised names and aliases to entity ids.

    Canonical names take precedence over aliases; among aliases the first
    entity wins.
    """
    index: dict[str, str] = {}
    for entity in entities:
        for alias in entity.aliases:
            index.setdefault(normalize_name(alias), entity.id)
    for entity in entities:
        index[normalize_name(entity.name)] = entity.id
    index.pop("", None)
    return index


def relation_id(from_id: str, relation_type: str, to_id: str) -> str:
    return f"{from_id}__{relation_type}__{to_id}"


def merge_relations(
    raw_relations: list[RawRelationExtraction],
    entities: list[KnowledgeEntity],
    *,
    confidence_threshold: float = 0.0,
) -> list[KnowledgeRelation]:
    """
    Merge raw relations into KnowledgeRelations between known entities.

    Args:
        raw_relations: Flattened relation extractions
        entities: Deduplicated entities the endpoints must resolve to
        confidence_threshold: Relations below this merged confidence are dropped

    Returns:
        KnowledgeRelations in first-appearance order
    """
    if not raw_relations or not entities:
        return []

    index = build_name_index(entities)
    grouped: dict[tuple[str, str, str], list[RawRelationExtraction]] = {}
    unresolved = 0

    for rel in raw_relations:
        from_id = index.get(normalize_name(rel.source))
        to_id = index.get(normalize_name(rel.target))
        if from_id is None or to_id is None or from_id == to_id:
            unresolved += 1
            continue
        grouped.setdefault((from_id, rel.type, to_id), []).append(rel)

    relations: list[KnowledgeRelation] = []
    for (from_id, relation_type, to_id), members in grouped.items():
        confidence = merged_confidence([m.confidence for m in members])
        if confidence < confidence_threshold:
            continue
        descriptions = [m.desc for m in members if m.desc]
        chunks: list[str] = []
        for member in members:
            chunks.extend(c for c in member.source_chunks if c not in chunks)
        relations.append(
            KnowledgeRelation(
                id=relation_id(from_id, relation_type, to_id),
                from_id=from_id,
                to_id=to_id,
                type=relation_type,
                properties={"description": max(descriptions, key=len) if descriptions else ""},
                source_chunks=chunks,
                confidence=confidence,
            )
        )

    if unresolved:
        logger.debug(f"Dropped {unresolved} relation(s) with unknown endpoints")
    logger.info(f"Relation merge: {len(raw_relations)} -> {len(relations)} relations")
    return relations
