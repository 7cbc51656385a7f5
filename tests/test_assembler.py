"""Tests for graph assembly and the rule-based fallback graph."""

from study_kg.types import (
    DetailedConcept,
    EntityType,
    KnowledgeEntity,
    KnowledgeRelation,
    StructuredChunk,
)


def _entity(name, entity_type=EntityType.CONCEPT, confidence=0.8, **kwargs):
    from study_kg.utils.text import generate_entity_id

    return KnowledgeEntity(
        id=generate_entity_id(entity_type.value, name),
        type=entity_type,
        name=name,
        confidence=confidence,
        **kwargs,
    )


class TestAssembler:
    """Tests for Assembler.assemble()."""

    def test_entities_keyed_by_id(self):
        """Entities are stored under their type/name id."""
        from study_kg.ingestion.assembly import Assembler

        graph = Assembler().assemble(
            [_entity("Mitosis", EntityType.PROCESS), _entity("Cell")],
            source_name="biology.pdf",
            total_chunks=4,
        )

        assert set(graph.entities) == {"process_mitosis", "concept_cell"}
        assert graph.metadata.source_name == "biology.pdf"
        assert graph.metadata.total_chunks == 4
        assert graph.metadata.version == "1.0"

    def test_id_collision_keeps_later_entity(self):
        """Two entities with the same id collapse to the later one."""
        from study_kg.ingestion.assembly import Assembler

        first = _entity("Cell", confidence=0.6)
        second = _entity("cell", confidence=0.9)

        graph = Assembler().assemble([first, second])

        assert len(graph.entities) == 1
        assert graph.entities["concept_cell"].confidence == 0.9

    def test_id_recomputed_from_type_and_name(self):
        """An entity carrying a foreign id is re-keyed."""
        from study_kg.ingestion.assembly import Assembler

        entity = KnowledgeEntity(id="whatever", type=EntityType.TOOL, name="Light Microscope", confidence=0.7)

        graph = Assembler().assemble([entity])

        assert list(graph.entities) == ["tool_light_microscope"]
        assert graph.entities["tool_light_microscope"].id == "tool_light_microscope"

    def test_relations_need_both_endpoints(self):
        """Relations pointing outside the graph are dropped."""
        from study_kg.ingestion.assembly import Assembler

        entities = [_entity("Mitosis", EntityType.PROCESS), _entity("Chromosome")]
        kept = KnowledgeRelation(
            id="process_mitosis__involves__concept_chromosome",
            from_id="process_mitosis",
            to_id="concept_chromosome",
            type="involves",
            confidence=0.8,
        )
        dangling = KnowledgeRelation(
            id="process_mitosis__produces__concept_gamete",
            from_id="process_mitosis",
            to_id="concept_gamete",
            type="produces",
            confidence=0.8,
        )

        graph = Assembler().assemble(entities, [kept, dangling])

        assert list(graph.relations) == [kept.id]

    def test_records_processing_config(self):
        """Metadata carries the processing mode and target entity count."""
        from study_kg.ingestion.assembly import Assembler
        from study_kg.types import ProcessingConfig, ProcessingMode

        config = ProcessingConfig(
            processing_mode=ProcessingMode.FULL_QUALITY,
            max_chunks_to_process=10,
            batch_size=2,
            max_entities_per_batch=30,
            confidence_threshold=0.6,
            target_time_minutes=1.0,
            expected_entities=45,
        )

        graph = Assembler().assemble([], config=config)

        assert graph.metadata.processing_mode == ProcessingMode.FULL_QUALITY
        assert graph.metadata.target_entities == 45
        assert graph.entities == {}


class TestRuleBasedGraph:
    """Tests for the rule-based emergency graph."""

    def test_entities_from_concepts(self):
        """Detailed concepts become 0.85-confidence concept entities."""
        from study_kg.ingestion.assembly import rule_based_entities

        chunk = StructuredChunk(
            id="chunk-0",
            order=0,
            key_ideas=["This idea is ignored when concepts exist"],
            detailed_concepts=[
                DetailedConcept(concept="Osmosis", explanation="x" * 150, category="Biology"),
            ],
        )

        entities = rule_based_entities(chunk)

        assert len(entities) == 1
        assert entities[0].name == "Osmosis"
        assert entities[0].confidence == 0.85
        assert len(entities[0].desc) == 100
        assert entities[0].cat == "Biology"
        assert entities[0].source_chunks == ["chunk-0"]

    def test_entities_from_key_ideas(self):
        """Without concepts, long key ideas become 0.7-confidence entities."""
        from study_kg.ingestion.assembly import rule_based_entities

        long_idea = "Cells reproduce by dividing into two genetically identical daughter cells"
        chunk = StructuredChunk(
            id="chunk-2",
            order=2,
            key_ideas=["Too short", long_idea, "Membranes regulate transport", "A fourth idea is never used"],
        )

        entities = rule_based_entities(chunk)

        assert [e.name for e in entities] == [long_idea[:50].strip(), "Membranes regulate transport"]
        assert all(e.confidence == 0.7 for e in entities)

    def test_build_rule_based_graph(self):
        """The emergency graph is deduplicated and marked rule-based."""
        from study_kg.ingestion.assembly import build_rule_based_graph

        chunks = [
            StructuredChunk(
                id=f"chunk-{i}",
                order=i,
                detailed_concepts=[DetailedConcept(concept="Osmosis"), DetailedConcept(concept=name)],
            )
            for i, name in enumerate(["Diffusion", "Endocytosis", "Active Transport"])
        ]

        graph = build_rule_based_graph(chunks, "notes.txt")

        assert graph.is_rule_based
        assert graph.metadata.total_chunks == 3
        osmosis = graph.entities["concept_osmosis"]
        assert osmosis.source_chunks == ["chunk-0", "chunk-1", "chunk-2"]
        assert len(graph.entities) == 4

    def test_build_rule_based_graph_chunk_limit(self):
        """Only the first max_chunks chunks contribute entities."""
        from study_kg.ingestion.assembly import build_rule_based_graph

        chunks = [
            StructuredChunk(id=f"chunk-{i}", order=i, detailed_concepts=[DetailedConcept(concept=name)])
            for i, name in enumerate(["Diffusion", "Endocytosis", "Mitosis", "Meiosis", "Ribosome"])
        ]

        graph = build_rule_based_graph(chunks, "notes.txt", max_chunks=2)

        assert {e.name for e in graph.entities.values()} == {"Diffusion", "Endocytosis"}

    def test_empty_chunks(self):
        """No chunks gives an empty rule-based graph."""
        from study_kg.ingestion.assembly import build_rule_based_graph

        graph = build_rule_based_graph([], "empty.txt")

        assert graph.entities == {}
        assert graph.is_rule_based
