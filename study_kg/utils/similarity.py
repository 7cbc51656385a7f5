"""
String Similarity

Normalised Levenshtein similarity used by the fuzzy dedup fallback:
``(len(longer) - distance) / len(longer)``, 1.0 for two empty strings.
"""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

FUZZY_MATCH_THRESHOLD = 0.85


def name_similarity(a: str, b: str) -> float:
    """
    Normalised Levenshtein similarity between two names in [0, 1].

    Comparison is case-insensitive and ignores surrounding whitespace.
    """
    a = a.strip().lower()
    b = b.strip().lower()
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def is_fuzzy_match(a: str, b: str, threshold: float = FUZZY_MATCH_THRESHOLD) -> bool:
    """True when the two names are at least ``threshold`` similar."""
    return name_similarity(a, b) >= threshold
