"""
Utility Functions

Core algorithms and helper functions used throughout the package.

Modules:
    text: Name normalisation, entity ids, sentence splitting
    similarity: Normalised Levenshtein similarity (rapidfuzz)
    token_count: Chunk token heuristic and tiktoken usage estimates
    batching: Sequential wave scheduling with settle-all semantics
    cost_telemetry: Run-scoped provider usage collection
"""

from study_kg.utils.batching import WaveOutcome, chunked, run_in_waves
from study_kg.utils.cost_telemetry import CostCollector, telemetry_collector, telemetry_stage
from study_kg.utils.similarity import FUZZY_MATCH_THRESHOLD, is_fuzzy_match, name_similarity
from study_kg.utils.text import (
    clean_entity_name,
    generate_entity_id,
    normalize_name,
    split_sentences,
    truncate,
)
from study_kg.utils.token_count import estimate_tokens

__all__ = [
    "WaveOutcome",
    "chunked",
    "run_in_waves",
    "CostCollector",
    "telemetry_collector",
    "telemetry_stage",
    "FUZZY_MATCH_THRESHOLD",
    "is_fuzzy_match",
    "name_similarity",
    "clean_entity_name",
    "generate_entity_id",
    "normalize_name",
    "split_sentences",
    "truncate",
    "estimate_tokens",
]
