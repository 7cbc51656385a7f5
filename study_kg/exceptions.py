"""
Exception Types

Errors raised by the pipeline and its text-completion provider.

Hierarchy:
    StudyKGError
    ├── CompletionRequestError  - transport, HTTP or timeout failure
    ├── CompletionParseError    - non-JSON or schema-violating response
    └── PipelineError           - unrecoverable failure of a pipeline run

Stage code recovers from the two completion errors per batch; only
PipelineError reaches callers of the pipeline.
"""

from __future__ import annotations


class StudyKGError(Exception):
    """Base class for all StudyKG errors."""


class CompletionRequestError(StudyKGError, RuntimeError):
    """The text-completion call itself failed (network, HTTP status, timeout)."""

    def __init__(self, message: str, *, model: str | None = None) -> None:
        super().__init__(message)
        self.model = model


class CompletionParseError(StudyKGError, ValueError):
    """The completion returned text that is not a JSON object of the expected shape."""

    def __init__(self, message: str, *, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class PipelineError(StudyKGError):
    """A pipeline run failed in a stage with no fallback."""

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage
