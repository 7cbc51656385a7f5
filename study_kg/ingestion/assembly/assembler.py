"""
Knowledge Graph Assembler

Final phase that inserts deduplicated entities (and merged relations)
into a KnowledgeGraph keyed by stable ids.

Insert order:
    1. Entities - keyed by ``{type}_{normalised name}``; an id collision
       collapses to one entry, the later entity replacing the earlier one
    2. Relations - only those whose endpoints are both in the graph
"""

from __future__ import annotations

import logging

from study_kg.types import (
    GraphMetadata,
    KnowledgeEntity,
    KnowledgeGraph,
    KnowledgeRelation,
    ProcessingConfig,
)
from study_kg.utils.text import generate_entity_id

logger = logging.getLogger(__name__)


class Assembler:
    """
    Builds a KnowledgeGraph from deduplicated pipeline output.

    Usage:
        assembler = Assembler()
        graph = assembler.assemble(entities, source_name="notes.pdf", total_chunks=12)
    """

    def assemble(
        self,
        entities: list[KnowledgeEntity],
        relations: list[KnowledgeRelation] | None = None,
        *,
        source_name: str = "document",
        total_chunks: int = 0,
        config: ProcessingConfig | None = None,
    ) -> KnowledgeGraph:
        """
        Insert entities and relations into a new graph.

        Args:
            entities: Deduplicated entities
            relations: Merged relations (optional)
            source_name: Name recorded in the graph metadata
            total_chunks: Number of chunks the document was split into
            config: Processing profile, recorded as mode and target entities

        Returns:
            The assembled KnowledgeGraph
        """
        graph = KnowledgeGraph(
            metadata=GraphMetadata(
                source_name=source_name,
                total_chunks=total_chunks,
                processing_mode=config.processing_mode if config else None,
                target_entities=config.expected_entities if config else 0,
            )
        )

        for entity in entities:
            entity_id = self._entity_id(entity)
            if entity_id in graph.entities:
                logger.warning(f"Entity id collision on {entity_id!r}; keeping the later entity")
            graph.entities[entity_id] = (
                entity if entity.id == entity_id else entity.model_copy(update={"id": entity_id})
            )

        dropped = 0
        for relation in relations or []:
            if relation.from_id not in graph.entities or relation.to_id not in graph.entities:
                dropped += 1
                continue
            graph.relations[relation.id] = relation

        if dropped:
            logger.debug(f"Dropped {dropped} relation(s) with endpoints outside the graph")
        logger.info(
            f"Assembled graph for {source_name!r}: {len(graph.entities)} entities, "
            f"{len(graph.relations)} relations"
        )
        return graph

    def _entity_id(self, entity: KnowledgeEntity) -> str:
        """Stable id derived from type and name."""
        return generate_entity_id(entity.type.value, entity.name)
