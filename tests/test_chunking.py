"""Tests for document chunking and chunk metadata refinement."""

import pytest

from study_kg.types import DocumentSource, StructuredChunk

PARAGRAPHS = [
    "The cell is the basic unit of life. Every organism is made of one or more cells. "
    "Cells carry out the processes that keep an organism alive.",
    "Mitosis is the division of one nucleus into two. It produces genetically identical "
    "daughter cells. Growth and repair depend on mitosis.",
    "Meiosis halves the chromosome number. It produces gametes for sexual reproduction. "
    "Crossing over during meiosis creates genetic variation.",
]


def _normalized(text: str) -> str:
    return " ".join(text.split())


class TestChunkText:
    """Tests for chunk_text()."""

    def test_three_paragraphs_small_budget(self):
        """Three paragraphs that cannot share a chunk give three ordered chunks."""
        from study_kg.ingestion.chunking import chunk_text

        chunks = chunk_text("\n\n".join(PARAGRAPHS), max_tokens_per_chunk=50)

        assert len(chunks) == 3
        assert [c.order for c in chunks] == [0, 1, 2]

    def test_small_document_single_chunk(self):
        """Text under the budget is one chunk with no overlap."""
        from study_kg.ingestion.chunking import chunk_text

        chunks = chunk_text("\n\n".join(PARAGRAPHS), max_tokens_per_chunk=1200)

        assert len(chunks) == 1
        assert chunks[0].metadata["overlap_chars"] == 0
        assert chunks[0].content == "\n\n".join(PARAGRAPHS)

    @pytest.mark.parametrize("text", ["", "   \n\n  ", None, 42])
    def test_empty_or_invalid_input(self, text):
        """Empty, whitespace-only and non-string input yield no chunks."""
        from study_kg.ingestion.chunking import chunk_text

        assert chunk_text(text) == []

    def test_non_positive_budget(self):
        """A budget below one token yields no chunks instead of raising."""
        from study_kg.ingestion.chunking import chunk_text

        assert chunk_text("Some text.", max_tokens_per_chunk=0) == []

    def test_coverage_without_overlap(self):
        """Concatenating each chunk's own text reconstructs the document."""
        from study_kg.ingestion.chunking import chunk_text, own_text

        text = "\n\n".join(PARAGRAPHS * 4)
        chunks = chunk_text(text, max_tokens_per_chunk=80, overlap_tokens=20)

        assert len(chunks) > 1
        rebuilt = " ".join(own_text(c) for c in chunks)
        assert _normalized(rebuilt) == _normalized(text)

    def test_overlap_carries_trailing_sentences(self):
        """A chunk after a break starts with sentences from its predecessor."""
        from study_kg.ingestion.chunking import chunk_text

        chunks = chunk_text("\n\n".join(PARAGRAPHS), max_tokens_per_chunk=50, overlap_tokens=30)

        second = chunks[1]
        assert second.metadata["overlap_chars"] > 0
        assert "Growth and repair depend on mitosis" not in chunks[0].content
        assert second.content.startswith("Cells carry out the processes that keep an organism alive")

    def test_chunks_stay_within_tolerance(self):
        """Chunks never exceed 1.2x the budget, overlap included."""
        from study_kg.ingestion.chunking import chunk_text
        from study_kg.utils.token_count import estimate_tokens

        text = "\n\n".join(PARAGRAPHS * 6)
        chunks = chunk_text(text, max_tokens_per_chunk=100, overlap_tokens=150)

        assert all(estimate_tokens(c.content) <= 120 for c in chunks)

    def test_force_split_unbroken_block(self):
        """A single block over the budget is split near sentence ends."""
        from study_kg.ingestion.chunking import chunk_text, own_text

        text = " ".join(PARAGRAPHS * 5)
        chunks = chunk_text(text, max_tokens_per_chunk=60, overlap_tokens=0)

        assert len(chunks) > 1
        assert all(len(c.content) <= 240 for c in chunks)
        assert all(c.content.endswith(".") for c in chunks)
        assert _normalized(" ".join(own_text(c) for c in chunks)) == _normalized(text)

    def test_oversized_paragraph_split_on_its_own(self):
        """A paragraph over the budget is force split between normal chunks."""
        from study_kg.ingestion.chunking import chunk_text

        big = " ".join(PARAGRAPHS * 3)
        text = "\n\n".join([PARAGRAPHS[0], big, PARAGRAPHS[2]])
        chunks = chunk_text(text, max_tokens_per_chunk=60, overlap_tokens=0)

        assert chunks[0].content == PARAGRAPHS[0]
        assert chunks[-1].content == PARAGRAPHS[2]
        assert len(chunks) > 3

    def test_source_metadata(self):
        """Source type and file name are copied into every chunk."""
        from study_kg.ingestion.chunking import chunk_text

        source = DocumentSource(source_type="pdf", file_name="cells.pdf")
        chunks = chunk_text("\n\n".join(PARAGRAPHS), max_tokens_per_chunk=50, source=source)

        assert all(c.metadata["source_type"] == "pdf" for c in chunks)
        assert all(c.metadata["file_name"] == "cells.pdf" for c in chunks)


class TestPreprocessText:
    """Tests for preprocess_text()."""

    def test_drops_page_numbers_and_toc(self):
        """Page-number and dot-leader lines are removed."""
        from study_kg.ingestion.chunking import preprocess_text

        text = (
            "Contents\n"
            "Introduction ........ 3\n"
            "Page 2\n"
            "The cell is the basic unit of life.\n"
            "- 7 -\n"
            "\n\n\n\n"
            "Mitosis divides the nucleus.\n"
            "4 of 20"
        )

        result = preprocess_text(text)

        assert "Introduction" not in result
        assert "Page 2" not in result
        assert "- 7 -" not in result
        assert "4 of 20" not in result
        assert "\n\n\n" not in result
        assert "The cell is the basic unit of life." in result
        assert "Mitosis divides the nucleus." in result


class TestLastSentences:
    """Tests for last_sentences()."""

    def test_collects_from_the_end(self):
        """Trailing sentences are taken while they fit."""
        from study_kg.ingestion.chunking.text import last_sentences

        text = "First sentence here. Second sentence here. Third one."

        assert last_sentences(text, 6) == "Third one."
        assert last_sentences(text, 0) == ""


class TestMetadataRefinement:
    """Tests for page/time range refinement."""

    def _chunks(self, n):
        return [StructuredChunk(id=f"chunk-{i}", order=i) for i in range(n)]

    def test_page_ranges(self):
        """Pages are spread evenly across chunks."""
        from study_kg.ingestion.chunking import refine_chunk_metadata

        source = DocumentSource(source_type="pdf", total_pages=10)
        refined = refine_chunk_metadata(self._chunks(4), source)

        assert [c.metadata.page_range for c in refined] == ["1-2", "3-5", "6-7", "8-10"]

    def test_more_chunks_than_pages(self):
        """Every chunk gets at least one page."""
        from study_kg.ingestion.chunking import refine_chunk_metadata

        source = DocumentSource(source_type="docx", total_pages=2)
        refined = refine_chunk_metadata(self._chunks(3), source)

        assert [c.metadata.page_range for c in refined] == ["1-1", "1-1", "2-2"]

    def test_time_ranges(self):
        """Media duration is spread evenly across chunks."""
        from study_kg.ingestion.chunking import refine_chunk_metadata

        source = DocumentSource(source_type="youtube", duration="6:00")
        refined = refine_chunk_metadata(self._chunks(3), source)

        assert [c.metadata.time_range for c in refined] == ["0:00-2:00", "2:00-4:00", "4:00-6:00"]

    def test_no_source_info_leaves_chunks(self):
        """Text sources without pages or duration are unchanged."""
        from study_kg.ingestion.chunking import refine_chunk_metadata

        chunks = self._chunks(2)
        refined = refine_chunk_metadata(chunks, DocumentSource(source_type="text"))

        assert refined == chunks
        assert refined[0].metadata.page_range is None

    @pytest.mark.parametrize(
        "duration,seconds",
        [("5:30", 330), ("1:30:45", 5445), ("", 0), (None, 0), ("abc", 0), ("1:2:3:4", 0)],
    )
    def test_parse_duration(self, duration, seconds):
        """Durations parse as m:ss or h:mm:ss."""
        from study_kg.ingestion.chunking import parse_duration

        assert parse_duration(duration) == seconds

    def test_format_time(self):
        """Times below an hour omit the hour field."""
        from study_kg.ingestion.chunking import format_time

        assert format_time(65) == "1:05"
        assert format_time(3725) == "1:02:05"
