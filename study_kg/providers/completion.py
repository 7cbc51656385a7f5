"""
JSON Completions

Sends one prompt to an LLMProvider and validates the reply against a
pydantic schema before anything downstream sees it.

Failure modes surface as exactly two exception types:
    CompletionRequestError - the call failed or exceeded its timeout
    CompletionParseError   - the reply is not a JSON object of the schema's shape
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from study_kg.exceptions import CompletionParseError, CompletionRequestError

if TYPE_CHECKING:
    from study_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)


def parse_completion(text: str, schema: type[T]) -> T:
    """
    Parse a completion into ``schema``.

    Markdown code fences around the JSON are tolerated.

    Raises:
        CompletionParseError: If the text is not a JSON object or fails validation
    """
    body = text or ""
    fenced = _CODE_FENCE.match(body)
    if fenced:
        body = fenced.group(1)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise CompletionParseError(f"Completion is not valid JSON: {e}", raw_text=text) from e

    if not isinstance(data, dict):
        raise CompletionParseError(
            f"Completion is JSON {type(data).__name__}, expected an object",
            raw_text=text,
        )

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise CompletionParseError(
            f"Completion does not match {schema.__name__}: {e.error_count()} error(s)",
            raw_text=text,
        ) from e


async def request_json(
    llm: "LLMProvider",
    prompt: str,
    schema: type[T],
    *,
    system: str | None = None,
    temperature: float = 0.2,
    max_tokens: int = 1500,
    timeout: float | None = None,
) -> T:
    """
    Request a JSON-object completion and validate it.

    Args:
        llm: Provider to call
        prompt: User prompt
        schema: Pydantic model the reply must satisfy
        system: Optional system message
        temperature: Sampling temperature
        max_tokens: Completion token cap
        timeout: Seconds before the call is abandoned (None = no limit)

    Raises:
        CompletionRequestError: If the call fails or times out
        CompletionParseError: If the reply cannot be validated
    """
    try:
        text = await asyncio.wait_for(
            llm.generate(
                prompt,
                system=system,
                temperature=temperature,
                max_tokens=max_tokens,
                json_mode=True,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise CompletionRequestError(
            f"Completion timed out after {timeout:.1f}s", model=llm.model_name
        ) from e

    return parse_completion(text, schema)
