"""Tests for text, similarity, token and batching utilities."""

import asyncio

import pytest


class TestTextUtils:
    """Tests for name and sentence helpers."""

    def test_normalize_name(self):
        """Normalisation keeps lowercase alphanumerics only."""
        from study_kg.utils.text import normalize_name

        assert normalize_name("King Leonidas I.") == "kingleonidasi"
        assert normalize_name("  DNA-Replication ") == "dnareplication"
        assert normalize_name("???") == ""

    @pytest.mark.parametrize("entity_type,name,expected", [
        ("person", "King Leonidas", "person_king_leonidas"),
        ("concept", "  Cell -- Theory! ", "concept_cell_theory"),
        ("process", "Krebs' cycle", "process_krebs_cycle"),
    ])
    def test_generate_entity_id(self, entity_type, name, expected):
        """Ids join the type and a collapsed slug."""
        from study_kg.utils.text import generate_entity_id

        assert generate_entity_id(entity_type, name) == expected

    def test_clean_entity_name(self):
        """Parenthetical qualifiers are removed unless nothing would remain."""
        from study_kg.utils.text import clean_entity_name

        assert clean_entity_name("Mitochondria (organelle)") == "Mitochondria"
        assert clean_entity_name("ATP (adenosine triphosphate) synthase") == "ATP synthase"
        assert clean_entity_name(" (footnote) ") == "(footnote)"

    def test_split_sentences(self):
        """Sentence punctuation runs split the text; short pieces can be dropped."""
        from study_kg.utils.text import split_sentences

        text = "Cells divide. Why?! Because growth needs it... Ok."

        assert split_sentences(text) == ["Cells divide", "Why", "Because growth needs it", "Ok"]
        assert split_sentences(text, min_length=3) == ["Cells divide", "Because growth needs it"]

    def test_truncate(self):
        """The suffix is only appended when text is cut."""
        from study_kg.utils.text import truncate

        assert truncate("short", 10, suffix="...") == "short"
        assert truncate("a long sentence", 6, suffix="...") == "a long..."


class TestSimilarity:
    """Tests for normalised Levenshtein similarity."""

    def test_identical_and_empty(self):
        """Identical names score 1.0, including two empty names."""
        from study_kg.utils.similarity import name_similarity

        assert name_similarity("Osmosis", "osmosis ") == 1.0
        assert name_similarity("", "") == 1.0

    def test_single_typo(self):
        """One edit in fourteen characters is a fuzzy match."""
        from study_kg.utils.similarity import is_fuzzy_match, name_similarity

        assert name_similarity("Photosynthesis", "Photosyntesis") == pytest.approx(13 / 14)
        assert is_fuzzy_match("Photosynthesis", "Photosyntesis")

    def test_distinct_names(self):
        """Related but distinct terms stay below the threshold."""
        from study_kg.utils.similarity import is_fuzzy_match

        assert not is_fuzzy_match("Mitosis", "Meiosis")
        assert is_fuzzy_match("Mitosis", "Meiosis", threshold=0.5)


class TestTokenCount:
    """Tests for token estimation."""

    @pytest.mark.parametrize("text,expected", [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2)])
    def test_estimate_tokens(self, text, expected):
        """Tokens are estimated as ceil(chars / 4)."""
        from study_kg.utils.token_count import estimate_tokens

        assert estimate_tokens(text) == expected

    def test_count_text_tokens_without_tokenizer(self):
        """Without a tokenizer the character heuristic is used."""
        from unittest.mock import patch

        from study_kg.utils.token_count import count_chat_tokens, count_text_tokens

        with patch("study_kg.utils.token_count._encoding_for", return_value=None):
            assert count_text_tokens("", "gpt-4o-mini") == 0
            assert count_text_tokens("abcdefgh", "gpt-4o-mini") == 2
            assert count_chat_tokens(["abcd", "abcdefgh"], "gpt-4o-mini") == 3 + 8


class TestBatching:
    """Tests for chunked() and run_in_waves()."""

    def test_chunked(self):
        """Items are partitioned in order."""
        from study_kg.utils.batching import chunked

        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert chunked([], 3) == []
        with pytest.raises(ValueError):
            chunked([1], 0)

    @pytest.mark.asyncio
    async def test_outcomes_in_input_order(self):
        """Outcomes come back in input order whatever the completion order."""
        from study_kg.utils.batching import run_in_waves

        async def worker(index, item):
            await asyncio.sleep(0.01 * (3 - index))
            return item * 10

        outcomes = await run_in_waves([1, 2, 3], worker, wave_size=3)

        assert [o.index for o in outcomes] == [0, 1, 2]
        assert [o.value for o in outcomes] == [10, 20, 30]
        assert all(o.succeeded for o in outcomes)

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        """A failing item is recorded without affecting its siblings."""
        from study_kg.utils.batching import run_in_waves

        async def worker(index, item):
            if item == "bad":
                raise RuntimeError("boom")
            return item.upper()

        outcomes = await run_in_waves(["a", "bad", "c", "d"], worker, wave_size=2)

        assert [o.succeeded for o in outcomes] == [True, False, True, True]
        assert isinstance(outcomes[1].error, RuntimeError)
        assert outcomes[3].value == "D"

    @pytest.mark.asyncio
    async def test_waves_are_sequential(self):
        """No more than wave_size items run at once."""
        from study_kg.utils.batching import run_in_waves

        in_flight = 0
        peak = 0

        async def worker(index, item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item

        await run_in_waves(list(range(7)), worker, wave_size=3)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_past_deadline_skips(self):
        """Items not yet scheduled at the deadline are reported as skipped."""
        import time

        from study_kg.utils.batching import run_in_waves

        async def worker(index, item):
            return item

        outcomes = await run_in_waves([1, 2, 3], worker, wave_size=2, deadline=time.monotonic() - 1)

        assert [o.skipped for o in outcomes] == [True, True, True]
        assert not any(o.succeeded for o in outcomes)

    @pytest.mark.asyncio
    async def test_invalid_wave_size(self):
        """A wave size below one is rejected."""
        from study_kg.utils.batching import run_in_waves

        async def worker(index, item):
            return item

        with pytest.raises(ValueError):
            await run_in_waves([1], worker, wave_size=0)
