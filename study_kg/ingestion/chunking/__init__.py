"""
Document Chunking

Transforms extracted document text into ordered raw chunks.

Modules:
    text: Paragraph-first chunking with force splitting and sentence overlap
    metadata: Page/time range refinement once the chunk count is known

Key Features:
    - Blank-line paragraph boundaries preferred
    - Character-budget force split for unbroken text
    - Trailing-sentence overlap between neighbouring chunks
    - Optional noise filter for page numbers and TOC lines
"""

from study_kg.ingestion.chunking.metadata import (
    format_time,
    parse_duration,
    refine_chunk_metadata,
)
from study_kg.ingestion.chunking.text import chunk_text, own_text, preprocess_text

__all__ = [
    "chunk_text",
    "own_text",
    "preprocess_text",
    "refine_chunk_metadata",
    "parse_duration",
    "format_time",
]
