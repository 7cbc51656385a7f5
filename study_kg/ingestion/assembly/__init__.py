"""
Knowledge Graph Assembly

Final phase that turns deduplicated entities into a KnowledgeGraph.

Modules:
    assembler: Id-keyed insertion of entities and relations
    fallback: Rule-based emergency graph built without model calls
"""

from study_kg.ingestion.assembly.assembler import Assembler
from study_kg.ingestion.assembly.fallback import build_rule_based_graph, rule_based_entities

__all__ = ["Assembler", "build_rule_based_graph", "rule_based_entities"]
