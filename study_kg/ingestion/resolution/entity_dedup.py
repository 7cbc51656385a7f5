"""
Entity Deduplication

Collapses raw extractions that name the same thing into KnowledgeEntities.

Phases:
    1. Exact/alias grouping: elements are grouped by normalised name, and
       each name group absorbs the groups its aliases name and the groups
       that list its name as an alias. Absorption is single-hop: a group
       pulled in through an alias does not pull in further groups.
    2. Fuzzy fallback: within each entity type, groups whose canonical
       names have a normalised Levenshtein similarity of at least 0.85 are
       merged. Groups are visited by descending confidence, so the stronger
       group always leads.
    3. Merge and filter: each group becomes one entity; entities below the
       confidence threshold are dropped.

Merge rules:
    - canonical name/type from the most confident instance
    - aliases: every other name and alias (never the canonical name)
    - source chunks and examples: ordered union
    - description: the longest one
    - confidence: min(0.95, max + 0.03 * (N - 1)), never below the max

The procedure is deterministic: the same input list and threshold always
produce the same entities in the same order.

Example:
    >>> entities = dedupe_entities(raw_extractions, confidence_threshold=0.5)
    >>> print(f"Merged into {len(entities)} entities")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from study_kg.ingestion.extraction.extractor import detect_entity_type
from study_kg.types.entities import EntityType, KnowledgeEntity, RawEntityExtraction
from study_kg.utils.similarity import FUZZY_MATCH_THRESHOLD, name_similarity
from study_kg.utils.text import generate_entity_id, normalize_name

logger = logging.getLogger(__name__)

MERGE_CONFIDENCE_STEP = 0.03
MERGE_CONFIDENCE_CAP = 0.95
DEFAULT_CATEGORY = "General"


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def merged_confidence(confidences: list[float]) -> float:
    """
    Confidence of a merge of ``len(confidences)`` instances.

    Each extra instance adds 0.03, capped at 0.95. The result is never
    lower than the best instance.
    """
    if not confidences:
        raise ValueError("merged_confidence requires at least one confidence")
    best = max(confidences)
    boosted = min(MERGE_CONFIDENCE_CAP, best + MERGE_CONFIDENCE_STEP * (len(confidences) - 1))
    return round(max(best, boosted), 6)


def _ordered_union(lists: list[list[str]]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for values in lists:
        for value in values:
            if value and value not in seen:
                seen.add(value)
                result.append(value)
    return result


@dataclass
class _Group:
    """Instances believed to be one entity, in input order."""

    first_index: int
    members: list[tuple[int, RawEntityExtraction]] = field(default_factory=list)

    @property
    def lead(self) -> RawEntityExtraction:
        # max() keeps the first of equal confidences
        return max(self.members, key=lambda m: m[1].confidence)[1]

    @property
    def confidence(self) -> float:
        return self.lead.confidence

    @property
    def entity_type(self) -> EntityType:
        return detect_entity_type(self.lead.type)


def merge_instances(instances: list[RawEntityExtraction]) -> KnowledgeEntity:
    """
    Merge instances of one logical entity into a KnowledgeEntity.

    Instances are ranked by confidence (stable, so input order breaks
    ties); the first ranked instance supplies the canonical name and type.
    """
    if not instances:
        raise ValueError("merge_instances requires at least one instance")

    ranked = sorted(instances, key=lambda e: e.confidence, reverse=True)
    main = ranked[0]
    entity_type = detect_entity_type(main.type)

    aliases = _ordered_union([[e.name for e in ranked[1:]]] + [e.aliases for e in ranked])
    descriptions = sorted(
        _ordered_union([[e.desc.strip()] for e in ranked]),
        key=len,
        reverse=True,
    )
    best_description = descriptions[0] if descriptions else ""
    examples = _ordered_union([e.examples for e in ranked])
    category = next((e.cat for e in ranked if e.cat), None)

    properties: dict = {}
    for instance in reversed(ranked):
        properties.update(instance.properties)
    properties.update(
        {
            "description": best_description,
            "category": category or DEFAULT_CATEGORY,
            "examples": examples,
        }
    )

    return KnowledgeEntity(
        id=generate_entity_id(entity_type.value, main.name),
        type=entity_type,
        name=main.name,
        aliases=aliases,
        properties=properties,
        descriptions=descriptions,
        source_chunks=_ordered_union([e.source_chunks for e in instances]),
        confidence=merged_confidence([e.confidence for e in instances]),
        category=category,
    )


def as_raw_extraction(entity: KnowledgeEntity) -> RawEntityExtraction:
    """Express a merged entity as a single raw extraction (for re-merging)."""
    return RawEntityExtraction(
        name=entity.name,
        type=entity.type.value,
        aliases=list(entity.aliases),
        desc=entity.properties.get("description", entity.descriptions[0] if entity.descriptions else ""),
        cat=entity.category,
        conf=entity.confidence,
        source_chunks=list(entity.source_chunks),
        examples=list(entity.properties.get("examples", [])),
        properties={k: v for k, v in entity.properties.items() if k not in {"description", "category", "examples"}},
    )


# -----------------------------------------------------------------------------
# Grouping Phases
# -----------------------------------------------------------------------------


def _group_by_name_and_alias(raw: list[RawEntityExtraction]) -> list[_Group]:
    """Phase 1: exact-name groups joined through aliases (single hop)."""
    name_groups: dict[str, list[tuple[int, RawEntityExtraction]]] = {}
    alias_index: dict[str, list[str]] = {}

    for index, element in enumerate(raw):
        key = normalize_name(element.name)
        if not key:
            logger.debug(f"Skipping element without usable name: {element.name!r}")
            continue
        name_groups.setdefault(key, []).append((index, element))

    for key, members in name_groups.items():
        for _, element in members:
            for alias in element.aliases:
                alias_key = normalize_name(alias)
                if alias_key and alias_key != key:
                    owners = alias_index.setdefault(alias_key, [])
                    if key not in owners:
                        owners.append(key)

    absorbed: set[str] = set()
    groups: list[_Group] = []

    for key, members in name_groups.items():
        if key in absorbed:
            continue
        absorbed.add(key)

        linked: list[str] = []
        for _, element in members:
            for alias in element.aliases:
                alias_key = normalize_name(alias)
                if alias_key in name_groups and alias_key not in linked:
                    linked.append(alias_key)
        for owner in alias_index.get(key, []):
            if owner not in linked:
                linked.append(owner)

        group = _Group(first_index=members[0][0], members=list(members))
        for other in linked:
            if other in absorbed:
                continue
            absorbed.add(other)
            group.members.extend(name_groups[other])
        group.members.sort(key=lambda m: m[0])
        groups.append(group)

    return groups


def _fuzzy_merge(groups: list[_Group], threshold: float) -> list[_Group]:
    """Phase 2: merge same-type groups with near-identical canonical names."""
    by_strength = sorted(groups, key=lambda g: (-g.confidence, g.first_index))
    merged_into: dict[int, _Group] = {}
    result: list[_Group] = []

    for position, leader in enumerate(by_strength):
        if id(leader) in merged_into:
            continue
        leader_type = leader.entity_type
        leader_name = leader.lead.name
        absorbed_members: list[tuple[int, RawEntityExtraction]] = []

        for candidate in by_strength[position + 1 :]:
            if id(candidate) in merged_into or candidate.entity_type != leader_type:
                continue
            if name_similarity(leader_name, candidate.lead.name) >= threshold:
                merged_into[id(candidate)] = leader
                absorbed_members.extend(candidate.members)
                logger.debug(f"Fuzzy merge: {candidate.lead.name!r} -> {leader_name!r}")

        if absorbed_members:
            # Leader members first so the leader keeps the canonical name on ties
            leader = _Group(
                first_index=min(leader.first_index, *(i for i, _ in absorbed_members)),
                members=leader.members + sorted(absorbed_members, key=lambda m: m[0]),
            )
        result.append(leader)

    result.sort(key=lambda g: g.first_index)
    return result


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


def dedupe_entities(
    raw_extractions: list[RawEntityExtraction],
    confidence_threshold: float,
    *,
    fuzzy_threshold: float = FUZZY_MATCH_THRESHOLD,
) -> list[KnowledgeEntity]:
    """
    Merge raw extractions into deduplicated, threshold-filtered entities.

    Args:
        raw_extractions: Flattened extractor output
        confidence_threshold: Entities below this merged confidence are dropped
        fuzzy_threshold: Name similarity at which two groups are one entity

    Returns:
        KnowledgeEntities ordered by first appearance in the input
    """
    if not raw_extractions:
        return []

    groups = _group_by_name_and_alias(raw_extractions)
    groups = _fuzzy_merge(groups, fuzzy_threshold)

    entities: list[KnowledgeEntity] = []
    dropped = 0
    for group in groups:
        entity = merge_instances([element for _, element in group.members])
        if entity.confidence < confidence_threshold:
            dropped += 1
            continue
        entities.append(entity)

    ratio = round(100 * len(entities) / len(raw_extractions))
    logger.info(
        f"Deduplication: {len(raw_extractions)} -> {len(entities)} entities "
        f"({ratio}% retained, {dropped} below threshold {confidence_threshold})"
    )
    return entities
