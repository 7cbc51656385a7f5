"""
Text Processing Utilities

Functions for name normalisation, id generation and sentence handling.
"""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


def normalize_name(name: str) -> str:
    """
    Normalise a name for grouping: lowercase, alphanumerics only.

    >>> normalize_name("King Leonidas I.")
    'kingleonidasi'
    """
    return _NON_ALNUM.sub("", name.lower())


def generate_entity_id(entity_type: str, name: str) -> str:
    """
    Generate a stable entity id: ``{type}_{slug}``.

    Runs of non-alphanumerics collapse to one underscore and edge
    underscores are trimmed, e.g. ("person", "King Leonidas") ->
    "person_king_leonidas".
    """
    slug = _NON_ALNUM_RUN.sub("_", name.lower()).strip("_")
    return f"{entity_type}_{slug}"


def clean_entity_name(name: str) -> str:
    """
    Clean an extracted name by removing parenthetical qualifiers.

    Args:
        name: Raw entity name from extraction

    Returns:
        Cleaned entity name (the original, stripped, if nothing would remain)
    """
    cleaned = re.sub(r"\s*\([^)]*\)\s*", " ", name)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or name.strip()


def split_sentences(text: str, *, min_length: int = 0) -> list[str]:
    """Split on runs of sentence punctuation, dropping pieces of ``min_length`` chars or fewer."""
    pieces = (p.strip() for p in _SENTENCE_BOUNDARY.split(text))
    return [p for p in pieces if p and len(p) > min_length]


def truncate(text: str, limit: int, *, suffix: str = "") -> str:
    """Cut ``text`` to ``limit`` characters, appending ``suffix`` only when cut."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + suffix
