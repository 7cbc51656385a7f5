"""Tests for entity deduplication."""

import pytest

from study_kg.types.entities import EntityType, RawEntityExtraction


def _raw(name, conf=None, **kwargs):
    return RawEntityExtraction(name=name, conf=conf, **kwargs)


class TestMergedConfidence:
    """Tests for merged_confidence helper."""

    def test_single_instance_keeps_confidence(self):
        """One instance is not boosted."""
        from study_kg.ingestion.resolution.entity_dedup import merged_confidence

        assert merged_confidence([0.7]) == 0.7

    def test_boost_per_extra_instance(self):
        """Each extra instance adds 0.03 to the best confidence."""
        from study_kg.ingestion.resolution.entity_dedup import merged_confidence

        assert merged_confidence([0.6, 0.8]) == pytest.approx(0.83)
        assert merged_confidence([0.6, 0.6, 0.6]) == pytest.approx(0.66)

    def test_capped_at_095(self):
        """Boosting never goes past 0.95."""
        from study_kg.ingestion.resolution.entity_dedup import merged_confidence

        assert merged_confidence([0.9] * 10) == pytest.approx(0.95)

    def test_never_below_best_input(self):
        """An input above the cap is kept rather than lowered."""
        from study_kg.ingestion.resolution.entity_dedup import merged_confidence

        assert merged_confidence([0.99, 0.5]) == pytest.approx(0.99)

    def test_empty_raises(self):
        """Merging nothing is a programming error."""
        from study_kg.ingestion.resolution.entity_dedup import merged_confidence

        with pytest.raises(ValueError):
            merged_confidence([])


class TestMergeInstances:
    """Tests for merge_instances."""

    def test_most_confident_instance_names_entity(self):
        """Canonical name and type come from the highest-confidence instance."""
        from study_kg.ingestion.resolution.entity_dedup import merge_instances

        entity = merge_instances([
            _raw("Cell Division", 0.6, type="process"),
            _raw("Mitosis", 0.9, type="process"),
        ])

        assert entity.name == "Mitosis"
        assert entity.type == EntityType.PROCESS
        assert entity.id == "process_mitosis"
        assert entity.aliases == ["Cell Division"]

    def test_longest_description_wins(self):
        """The longest description becomes the entity description."""
        from study_kg.ingestion.resolution.entity_dedup import merge_instances

        entity = merge_instances([
            _raw("Osmosis", 0.8, desc="Water movement"),
            _raw("Osmosis", 0.7, desc="Movement of water across a semipermeable membrane"),
        ])

        assert entity.properties["description"] == "Movement of water across a semipermeable membrane"
        assert entity.descriptions[0] == entity.properties["description"]
        assert len(entity.descriptions) == 2

    def test_unions_chunks_and_examples(self):
        """Source chunks and examples are unioned without duplicates."""
        from study_kg.ingestion.resolution.entity_dedup import merge_instances

        entity = merge_instances([
            _raw("Osmosis", 0.8, source_chunks=["chunk-0", "chunk-1"], examples=["Raisins swelling"]),
            _raw("Osmosis", 0.7, source_chunks=["chunk-1", "chunk-4"], examples=["Raisins swelling", "Wilting"]),
        ])

        assert entity.source_chunks == ["chunk-0", "chunk-1", "chunk-4"]
        assert entity.properties["examples"] == ["Raisins swelling", "Wilting"]

    def test_default_category(self):
        """Entities without a category are filed under General."""
        from study_kg.ingestion.resolution.entity_dedup import merge_instances

        entity = merge_instances([_raw("Osmosis", 0.8)])

        assert entity.category is None
        assert entity.properties["category"] == "General"

    def test_default_confidence_applied(self):
        """Instances without a confidence count as 0.75."""
        from study_kg.ingestion.resolution.entity_dedup import merge_instances

        assert merge_instances([_raw("Osmosis")]).confidence == 0.75


class TestDedupeEntities:
    """Tests for dedupe_entities."""

    def test_alias_merge_scenario(self):
        """A name listed as another element's alias merges into one entity."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        raw = [
            _raw("Leonidas", 0.8, type="person", source_chunks=["chunk-0"]),
            _raw("King Leonidas", 0.75, type="person", aliases=["Leonidas"], source_chunks=["chunk-3"]),
        ]

        entities = dedupe_entities(raw, confidence_threshold=0.5)

        assert len(entities) == 1
        entity = entities[0]
        assert entity.name == "Leonidas"
        assert "King Leonidas" in entity.aliases
        assert entity.name not in entity.aliases
        assert entity.confidence == pytest.approx(0.83)
        assert entity.source_chunks == ["chunk-0", "chunk-3"]

    def test_exact_name_match_ignores_case_and_punctuation(self):
        """Names equal after normalisation are one entity."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        entities = dedupe_entities(
            [_raw("DNA Replication", 0.8), _raw("dna-replication", 0.7)],
            confidence_threshold=0.0,
        )

        assert len(entities) == 1
        assert entities[0].name == "DNA Replication"

    def test_fuzzy_merge_same_type(self):
        """Near-identical names of the same type merge."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        entities = dedupe_entities(
            [_raw("Photosyntesis", 0.7, type="concept"), _raw("Photosynthesis", 0.9, type="concept")],
            confidence_threshold=0.0,
        )

        assert len(entities) == 1
        assert entities[0].name == "Photosynthesis"
        assert entities[0].aliases == ["Photosyntesis"]
        assert entities[0].confidence == pytest.approx(0.93)

    def test_fuzzy_merge_respects_type(self):
        """Near-identical names of different types stay separate."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        entities = dedupe_entities(
            [_raw("Photosynthesis", 0.9, type="concept"), _raw("Photosyntesis", 0.7, type="process")],
            confidence_threshold=0.0,
        )

        assert len(entities) == 2

    def test_dissimilar_names_stay_separate(self):
        """Names below the similarity threshold are not merged."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        entities = dedupe_entities(
            [_raw("Mitosis", 0.9), _raw("Meiosis", 0.9)],
            confidence_threshold=0.0,
        )

        assert [e.name for e in entities] == ["Mitosis", "Meiosis"]

    def test_threshold_filter(self):
        """No entity below the confidence threshold is returned."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        raw = [_raw("Strong", 0.9), _raw("Weak", 0.4), _raw("Boosted", 0.58), _raw("Boosted", 0.5)]

        entities = dedupe_entities(raw, confidence_threshold=0.6)

        assert {e.name for e in entities} == {"Strong", "Boosted"}
        assert all(e.confidence >= 0.6 for e in entities)

    def test_alias_invariant(self):
        """Aliases never contain the name and are unique case-insensitively."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        raw = [
            _raw("Cell", 0.9, aliases=["cell", "Cells", "Unit of Life"]),
            _raw("CELL", 0.8, aliases=["cells", "unit of life"]),
        ]

        entity = dedupe_entities(raw, confidence_threshold=0.0)[0]

        lowered = [a.lower() for a in entity.aliases]
        assert entity.name.lower() not in lowered
        assert len(lowered) == len(set(lowered))

    def test_idempotent(self):
        """Deduplicating merged output again changes nothing."""
        from study_kg.ingestion.resolution.entity_dedup import as_raw_extraction, dedupe_entities

        raw = [
            _raw("Leonidas", 0.8, type="person"),
            _raw("King Leonidas", 0.75, type="person", aliases=["Leonidas"]),
            _raw("Thermopylae", 0.9, type="place", desc="Mountain pass"),
            _raw("Photosynthesis", 0.7),
        ]

        first = dedupe_entities(raw, confidence_threshold=0.5)
        second = dedupe_entities([as_raw_extraction(e) for e in first], confidence_threshold=0.5)

        assert [(e.id, e.name, e.aliases, e.confidence) for e in first] == [
            (e.id, e.name, e.aliases, e.confidence) for e in second
        ]

    def test_deterministic(self):
        """The same input gives the same entities in the same order."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        raw = [
            _raw("Mitosis", 0.8, type="process"),
            _raw("Meiosis", 0.8, type="process"),
            _raw("Mitosis", 0.8, type="process", desc="Cell division"),
            _raw("Chromosome", 0.9),
        ]

        runs = [
            [(e.id, e.aliases, e.confidence) for e in dedupe_entities(raw, confidence_threshold=0.0)]
            for _ in range(3)
        ]

        assert runs[0] == runs[1] == runs[2]
        assert [r[0] for r in runs[0]] == ["process_mitosis", "process_meiosis", "concept_chromosome"]

    def test_empty_input(self):
        """No extractions means no entities."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        assert dedupe_entities([], confidence_threshold=0.5) == []

    def test_unusable_names_skipped(self):
        """Elements whose names normalise to nothing are ignored."""
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        entities = dedupe_entities([_raw("???", 0.9), _raw("Osmosis", 0.9)], confidence_threshold=0.0)

        assert [e.name for e in entities] == ["Osmosis"]


class TestMergeRelations:
    """Tests for merge_relations."""

    def _entities(self):
        from study_kg.ingestion.resolution.entity_dedup import dedupe_entities

        return dedupe_entities(
            [
                _raw("Leonidas", 0.9, type="person", aliases=["King Leonidas"]),
                _raw("Thermopylae", 0.9, type="place"),
            ],
            confidence_threshold=0.0,
        )

    def test_resolves_names_and_aliases(self):
        """Endpoints resolve through canonical names and aliases."""
        from study_kg.ingestion.resolution.relation_merge import merge_relations
        from study_kg.types.entities import RawRelationExtraction

        relations = merge_relations(
            [RawRelationExtraction(source="King Leonidas", target="thermopylae", type="fought_at", conf=0.8)],
            self._entities(),
        )

        assert len(relations) == 1
        relation = relations[0]
        assert relation.from_id == "person_leonidas"
        assert relation.to_id == "place_thermopylae"
        assert relation.id == "person_leonidas__fought_at__place_thermopylae"

    def test_duplicate_relations_merge(self):
        """Relations with the same endpoints and type merge with the confidence rule."""
        from study_kg.ingestion.resolution.relation_merge import merge_relations
        from study_kg.types.entities import RawRelationExtraction

        raw = [
            RawRelationExtraction(source="Leonidas", target="Thermopylae", type="fought_at", conf=0.8, source_chunks=["chunk-0"]),
            RawRelationExtraction(source="Leonidas", target="Thermopylae", type="fought_at", conf=0.7, desc="Led the defence", source_chunks=["chunk-2"]),
        ]

        relations = merge_relations(raw, self._entities())

        assert len(relations) == 1
        assert relations[0].confidence == pytest.approx(0.83)
        assert relations[0].source_chunks == ["chunk-0", "chunk-2"]
        assert relations[0].properties["description"] == "Led the defence"

    def test_unknown_endpoints_dropped(self):
        """Relations naming an entity outside the set are dropped."""
        from study_kg.ingestion.resolution.relation_merge import merge_relations
        from study_kg.types.entities import RawRelationExtraction

        relations = merge_relations(
            [
                RawRelationExtraction(source="Leonidas", target="Xerxes", type="fought"),
                RawRelationExtraction(source="Leonidas", target="Leonidas", type="is"),
            ],
            self._entities(),
        )

        assert relations == []
