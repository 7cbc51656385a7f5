"""
LLM Providers

Provider-agnostic text-completion interface and JSON validation helpers.

Modules:
    base: Abstract LLMProvider interface
    completion: request_json / parse_completion (timeout + schema validation)
    llm/: Provider implementations

Supported LLM Providers:
    - OpenAI (gpt-4o, gpt-4o-mini) via LangChain

Example:
    >>> from study_kg.providers import LLMProvider, create_llm_provider
    >>> llm = create_llm_provider(KGConfig())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from study_kg.providers.base import LLMProvider
from study_kg.providers.completion import parse_completion, request_json

if TYPE_CHECKING:
    from study_kg.config.settings import KGConfig


def create_llm_provider(config: "KGConfig", *, quality: bool = False) -> LLMProvider:
    """
    Build the configured provider for the bulk or quality model.

    Raises:
        ValueError: If ``config.llm_provider`` is not supported
    """
    if config.llm_provider != "openai":
        raise ValueError(f"Unsupported LLM provider: {config.llm_provider}")

    from study_kg.providers.llm.openai import OpenAILLMProvider

    return OpenAILLMProvider(
        api_key=config.openai_api_key,
        model=config.llm_model_quality if quality else config.llm_model_bulk,
        timeout=config.request_timeout_seconds,
    )


__all__ = ["LLMProvider", "create_llm_provider", "parse_completion", "request_json"]
