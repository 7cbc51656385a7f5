"""
OpenAI LLM Provider (LangChain-based)

Implements LLMProvider using LangChain's ChatOpenAI.

Supports:
    - Text generation (generate)
    - JSON-object mode (generate(..., json_mode=True)) for structured replies
    - Model switching between quality tiers (with_model)

Models:
    - gpt-4o: Best quality, used for FULL_QUALITY extraction
    - gpt-4o-mini: Fast and cheap, used for structuring and bulk extraction

Example:
    >>> provider = OpenAILLMProvider(api_key="sk-...", model="gpt-4o-mini")
    >>> reply = await provider.generate("Summarise photosynthesis.", json_mode=False)

    >>> quality = provider.with_model("gpt-4o")
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from study_kg.config.pricing import estimate_llm_cost_usd
from study_kg.exceptions import CompletionRequestError
from study_kg.providers.base import LLMProvider
from study_kg.types.results import CostUsageRecord
from study_kg.utils.cost_telemetry import current_stage, record_usage
from study_kg.utils.token_count import count_chat_tokens, count_text_tokens

if TYPE_CHECKING:
    from langchain_openai import ChatOpenAI


def _as_int(value: Any) -> int | None:
    """Best-effort int coercion."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _extract_token_usage(response: Any) -> tuple[int | None, int | None, int | None]:
    """
    Extract token usage from LangChain response metadata.

    Returns:
        (input_tokens, output_tokens, total_tokens)
    """
    if response is None:
        return None, None, None

    usage = getattr(response, "usage_metadata", None)
    if isinstance(usage, dict):
        input_tokens = _as_int(usage.get("input_tokens") or usage.get("prompt_tokens"))
        output_tokens = _as_int(usage.get("output_tokens") or usage.get("completion_tokens"))
        total_tokens = _as_int(usage.get("total_tokens"))
        if any(v is not None for v in (input_tokens, output_tokens, total_tokens)):
            return input_tokens, output_tokens, total_tokens

    response_metadata = getattr(response, "response_metadata", None)
    if isinstance(response_metadata, dict):
        token_usage = response_metadata.get("token_usage") or response_metadata.get("usage")
        if isinstance(token_usage, dict):
            return (
                _as_int(token_usage.get("prompt_tokens")),
                _as_int(token_usage.get("completion_tokens")),
                _as_int(token_usage.get("total_tokens")),
            )

    return None, None, None


def _get_chat_openai(
    api_key: str | None = None,
    model: str = "gpt-4o-mini",
    temperature: float = 0.0,
    timeout: float | None = None,
    max_retries: int = 2,
) -> "ChatOpenAI":
    """
    Build a ChatOpenAI instance.

    Args:
        api_key: Optional API key. If not provided, uses OPENAI_API_KEY env var.
        model: Model name to use.
        temperature: Sampling temperature.
        timeout: HTTP request timeout in seconds.
        max_retries: Client-side retries for transient HTTP errors.
    """
    from langchain_openai import ChatOpenAI

    kwargs: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "max_retries": max_retries,
    }
    if api_key:
        kwargs["api_key"] = api_key
    if timeout is not None:
        kwargs["timeout"] = timeout

    return ChatOpenAI(**kwargs)


class OpenAILLMProvider(LLMProvider):
    """
    OpenAI LLM provider implementation using LangChain.

    Every call records a CostUsageRecord into the active telemetry
    collector (if any), including failed calls.

    Args:
        api_key: OpenAI API key. If None, uses OPENAI_API_KEY environment variable.
        model: Model to use (default: "gpt-4o-mini")
        timeout: HTTP request timeout in seconds
        max_retries: Client-side retries for transient HTTP errors
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        *,
        timeout: float | None = None,
        max_retries: int = 2,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._max_retries = max_retries
        # Clients are cached per temperature, created on first use
        self._clients: dict[float, ChatOpenAI] = {}

    def _get_client(self, temperature: float) -> "ChatOpenAI":
        """Get or create the ChatOpenAI client for a temperature."""
        if temperature not in self._clients:
            self._clients[temperature] = _get_chat_openai(
                api_key=self._api_key,
                model=self._model,
                temperature=temperature,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._clients[temperature]

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

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
        Generate a text completion.

        Args:
            prompt: User prompt
            system: Optional system message for context
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens in response
            json_mode: Request a JSON object (response_format=json_object)

        Returns:
            Generated text response

        Raises:
            CompletionRequestError: If the request fails
        """
        from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

        start = time.perf_counter_ns()

        bind_kwargs: dict[str, Any] = {"max_tokens": max_tokens}
        if json_mode:
            bind_kwargs["response_format"] = {"type": "json_object"}
        client = self._get_client(temperature).bind(**bind_kwargs)

        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        try:
            response = await client.ainvoke(messages)
        except Exception as e:
            self._record(
                prompt,
                system,
                output_text="",
                response=None,
                start=start,
                metadata={"temperature": temperature, "json_mode": json_mode, "failed": True},
            )
            raise CompletionRequestError(
                f"OpenAI request to {self._model} failed: {e}", model=self._model
            ) from e

        output_text = str(response.content)
        self._record(
            prompt,
            system,
            output_text=output_text,
            response=response,
            start=start,
            metadata={"temperature": temperature, "max_tokens": max_tokens, "json_mode": json_mode},
        )
        return output_text

    def _record(
        self,
        prompt: str,
        system: str | None,
        *,
        output_text: str,
        response: Any,
        start: int,
        metadata: dict[str, Any],
    ) -> None:
        """Emit a usage record, estimating tokens the API did not report."""
        input_tokens, output_tokens, total_tokens = _extract_token_usage(response)
        estimated = False

        if input_tokens is None:
            chat_messages = [system, prompt] if system else [prompt]
            input_tokens = count_chat_tokens(chat_messages, self._model)
            estimated = True

        if output_tokens is None:
            output_tokens = count_text_tokens(output_text, self._model)
            estimated = True

        if total_tokens is None:
            total_tokens = input_tokens + output_tokens

        estimated_cost, pricing_found = estimate_llm_cost_usd(
            self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        elapsed_ms = (time.perf_counter_ns() - start) // 1_000_000

        record_usage(
            CostUsageRecord(
                provider="openai",
                model=self._model,
                operation="generate",
                stage=current_stage(),
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=total_tokens,
                estimated_cost_usd=estimated_cost,
                latency_ms=int(elapsed_ms),
                estimated=estimated,
                metadata={**metadata, "pricing_found": pricing_found},
            )
        )

    def with_model(self, model: str) -> "OpenAILLMProvider":
        """
        Return a new provider instance with a different model.

        Used to switch between the bulk and quality tiers.
        """
        return OpenAILLMProvider(
            api_key=self._api_key,
            model=model,
            timeout=self._timeout,
            max_retries=self._max_retries,
        )
