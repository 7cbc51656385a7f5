"""
Token counting helpers.

``estimate_tokens`` is the deterministic 4-characters-per-token heuristic
the pipeline uses for every chunk budget. The tiktoken-based counters are
only used to estimate provider usage when the API does not report it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from functools import lru_cache

import tiktoken

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate tokens as ceil(len / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@lru_cache(maxsize=16)
def _encoding_for(model: str) -> "tiktoken.Encoding | None":
    """Resolve (and cache) the tokenizer for a model, None if it cannot be loaded."""
    try:
        try:
            return tiktoken.encoding_for_model(model)
        except KeyError:
            return tiktoken.get_encoding("cl100k_base")
    except (OSError, ValueError) as e:
        # Encodings are downloaded on first use; offline hosts fall back.
        logger.debug(f"tiktoken encoding unavailable for {model}: {e}")
        return None


def count_text_tokens(text: str, model: str) -> int:
    """
    Count tokens for plain text.

    Falls back to the character heuristic when no tokenizer can be loaded.
    """
    if not text:
        return 0
    encoding = _encoding_for(model)
    if encoding is not None:
        return len(encoding.encode(text))
    return max(1, estimate_tokens(text))


def count_chat_tokens(messages: Iterable[str], model: str) -> int:
    """
    Estimate tokens for chat-style inputs.

    Adds a small fixed overhead per message for role/control tokens.
    """
    total = 0
    message_count = 0
    for message in messages:
        total += count_text_tokens(message, model)
        message_count += 1

    return total + (message_count * 4)
