"""
Abstract Provider Interface

The pipeline's only external collaborator is a text-completion capability:
it accepts a system and user prompt and returns text, ideally a JSON
object when ``json_mode`` is requested.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        json_mode: bool = False,
    ) -> str:
        """
        Generate a completion.

        Implementations raise ``CompletionRequestError`` for transport,
        HTTP and timeout failures.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Current model name."""
        ...
