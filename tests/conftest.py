"""Shared fixtures for StudyKG tests."""

import json
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

_INDEX_PATTERN = re.compile(r"=== INDEX (\d+):")


@pytest.fixture
def mock_llm():
    """Completion provider whose generate() is an AsyncMock."""
    llm = MagicMock()
    llm.model_name = "gpt-4o-mini"
    llm.generate = AsyncMock(return_value="{}")
    return llm


def _structuring_reply(prompt: str) -> str:
    chunks = [
        {
            "index": int(index),
            "summary": f"Summary of section {index}.",
            "keyIdeas": [f"Idea {index}"],
            "detailedConcepts": [{"concept": f"Concept {index}", "explanation": "Explained."}],
            "title": f"Section title {index}",
            "chunkType": "analysis",
            "importance": "high",
        }
        for index in _INDEX_PATTERN.findall(prompt)
    ]
    return json.dumps({"chunks": chunks})


@pytest.fixture
def structuring_reply():
    """Builds a valid structuring reply covering every section of a prompt."""
    return _structuring_reply
