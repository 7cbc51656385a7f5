"""
Relation Extraction

Optional second pass per extraction batch: given the element names a batch
produced, ask for directed relations between them. Relations naming an
element outside that list are dropped here; relations whose endpoints do
not survive deduplication are dropped at merge time.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from study_kg.providers.completion import request_json
from study_kg.types.entities import RawRelationExtraction
from study_kg.types.results import ExtractedRelation, RelationExtractionResponse
from study_kg.utils.text import normalize_name

if TYPE_CHECKING:
    from study_kg.providers.base import LLMProvider

logger = logging.getLogger(__name__)

MAX_RELATIONS_PER_BATCH = 20


# -----------------------------------------------------------------------------
# LLM Prompts
# -----------------------------------------------------------------------------

_RELATION_SYSTEM_PROMPT = """\
You connect study elements extracted from a document. Only use the element
names you are given, spelled exactly as given. Prefer specific relation
labels such as "is_a", "part_of", "uses", "example_of", "causes",
"precedes", "defines". Respond with a single JSON object."""

_RELATION_USER_TEMPLATE = """\
Document: "{source_name}"

ELEMENTS:
{elements}

CONTEXT:
{context}

Return JSON:
{{
  "relations": [
    {{"from": "element name", "to": "element name", "type": "relation label",
      "desc": "short justification", "conf": 0.8}}
  ]
}}

Return at most {limit} relations. Return an empty list if none are clearly stated."""


async def extract_relations(
    element_names: list[str],
    context: str,
    llm: "LLMProvider",
    *,
    source_name: str,
    chunk_ids: list[str],
    timeout: float | None = None,
    temperature: float = 0.2,
) -> list[RawRelationExtraction]:
    """
    Ask for relations between ``element_names``.

    Returns an empty list without calling the model when fewer than two
    distinct names are given.

    Raises:
        CompletionRequestError: If the call fails or times out
        CompletionParseError: If the reply cannot be validated
    """
    known = {normalize_name(n): n for n in element_names if normalize_name(n)}
    if len(known) < 2:
        return []

    prompt = _RELATION_USER_TEMPLATE.format(
        source_name=source_name,
        elements="\n".join(f"- {name}" for name in known.values()),
        context=context,
        limit=MAX_RELATIONS_PER_BATCH,
    )
    response = await request_json(
        llm,
        prompt,
        RelationExtractionResponse,
        system=_RELATION_SYSTEM_PROMPT,
        temperature=temperature,
        max_tokens=800,
        timeout=timeout,
    )

    relations: list[RawRelationExtraction] = []
    for item in response.relations:
        try:
            rel = ExtractedRelation.model_validate(item)
        except ValidationError:
            logger.debug(f"Dropping malformed relation: {item!r}")
            continue

        source = known.get(normalize_name(rel.source))
        target = known.get(normalize_name(rel.target))
        if source is None or target is None or source == target:
            continue

        relations.append(
            RawRelationExtraction(
                source=source,
                target=target,
                type=rel.type.strip().lower().replace(" ", "_") or "related_to",
                desc=rel.desc,
                conf=rel.conf,
                source_chunks=list(chunk_ids),
            )
        )

    return relations[:MAX_RELATIONS_PER_BATCH]
