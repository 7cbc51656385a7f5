"""Tests for KGConfig and the tier profiles."""

import pytest

_ENV_VARS = [
    "STUDYKG_LLM_PROVIDER",
    "STUDYKG_LLM_MODEL_BULK",
    "STUDYKG_LLM_MODEL_QUALITY",
    "STUDYKG_MAX_TOKENS_PER_CHUNK",
    "STUDYKG_OVERLAP_TOKENS",
    "STUDYKG_STRUCTURING_CONCURRENCY",
    "STUDYKG_EXTRACTION_CONCURRENCY",
    "STUDYKG_REQUEST_TIMEOUT_SECONDS",
    "STUDYKG_EXTRACT_RELATIONS",
    "STUDYKG_ENFORCE_TIME_BUDGET",
    "STUDYKG_COST_DEBUG",
    "STUDYKG_COST_DEBUG_WARN_THRESHOLD_USD",
    "OPENAI_API_KEY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test without StudyKG environment variables."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestKGConfig:
    """Tests for KGConfig construction and overrides."""

    def test_defaults(self):
        """Defaults match the documented values."""
        from study_kg.config import KGConfig

        config = KGConfig()

        assert config.llm_provider == "openai"
        assert config.llm_model_bulk == "gpt-4o-mini"
        assert config.llm_model_quality == "gpt-4o"
        assert config.max_tokens_per_chunk == 1200
        assert config.overlap_tokens == 150
        assert config.extract_relations is False
        assert config.cost_debug is False
        assert config.openai_api_key is None

    def test_unknown_option_rejected(self):
        """Unknown keyword arguments raise ValueError."""
        from study_kg.config import KGConfig

        with pytest.raises(ValueError, match="Unknown configuration option"):
            KGConfig(chunk_size=10)

    def test_environment(self, monkeypatch):
        """Environment variables are read before explicit overrides."""
        from study_kg.config import KGConfig

        monkeypatch.setenv("STUDYKG_MAX_TOKENS_PER_CHUNK", "800")
        monkeypatch.setenv("STUDYKG_EXTRACT_RELATIONS", "true")
        monkeypatch.setenv("STUDYKG_COST_DEBUG", "1")
        monkeypatch.setenv("STUDYKG_REQUEST_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        config = KGConfig(overlap_tokens=40)

        assert config.max_tokens_per_chunk == 800
        assert config.extract_relations is True
        assert config.cost_debug is True
        assert config.request_timeout_seconds == 12.5
        assert config.openai_api_key == "sk-test"
        assert config.overlap_tokens == 40

        assert KGConfig(max_tokens_per_chunk=300).max_tokens_per_chunk == 300

    def test_false_flag(self, monkeypatch):
        """Flags other than the truthy spellings read as False."""
        from study_kg.config import KGConfig

        monkeypatch.setenv("STUDYKG_ENFORCE_TIME_BUDGET", "no")

        assert KGConfig().enforce_time_budget is False

    def test_with_overrides(self):
        """with_overrides copies every option and leaves the original intact."""
        from study_kg.config import KGConfig

        base = KGConfig(max_tokens_per_chunk=600)

        derived = base.with_overrides(extract_relations=True)

        assert derived.max_tokens_per_chunk == 600
        assert derived.extract_relations is True
        assert base.extract_relations is False
        with pytest.raises(ValueError):
            base.with_overrides(bogus=1)

    @pytest.mark.parametrize("override,full_quality,expected", [
        (None, True, 2),
        (None, False, 4),
        (6, True, 6),
        (0, False, 1),
    ])
    def test_extraction_concurrency_for(self, override, full_quality, expected):
        """Wave size defaults by mode unless explicitly set."""
        from study_kg.config import KGConfig

        config = KGConfig(extraction_concurrency=override)

        assert config.extraction_concurrency_for(full_quality) == expected


class TestConfigFiles:
    """Tests for TOML loading and saving."""

    def test_from_file_sections(self, tmp_path):
        """Sections are flattened into options."""
        from study_kg.config import KGConfig

        path = tmp_path / "study_kg.toml"
        path.write_text(
            "max_tokens_per_chunk = 900\n"
            "\n"
            "[llm]\n"
            'model_bulk = "gpt-4.1-mini"\n'
            "\n"
            "[processing]\n"
            "extract_relations = true\n"
            "\n"
            "[cost_telemetry]\n"
            "warn_threshold_usd = 0.5\n"
            "\n"
            "[api_keys]\n"
            'openai = "sk-file"\n'
        )

        config = KGConfig.from_file(path)

        assert config.llm_model_bulk == "gpt-4.1-mini"
        assert config.max_tokens_per_chunk == 900
        assert config.extract_relations is True
        assert config.cost_debug_warn_threshold_usd == 0.5
        assert config.openai_api_key == "sk-file"

    def test_from_file_unknown_option(self, tmp_path):
        """Unknown keys in a file are rejected."""
        from study_kg.config import KGConfig

        path = tmp_path / "bad.toml"
        path.write_text("[chunking]\nwidth = 3\n")

        with pytest.raises(ValueError):
            KGConfig.from_file(path)

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        from study_kg.config import KGConfig

        with pytest.raises(FileNotFoundError):
            KGConfig.from_file(tmp_path / "absent.toml")

    def test_round_trip(self, tmp_path):
        """Saved files load back to the same options, without API keys."""
        from study_kg.config import KGConfig

        original = KGConfig(
            max_tokens_per_chunk=700,
            wave_delay_seconds=0.25,
            extract_relations=True,
            openai_api_key="sk-secret",
        )
        path = tmp_path / "nested" / "study_kg.toml"

        original.to_file(path)
        loaded = KGConfig.from_file(path)

        assert "sk-secret" not in path.read_text()
        assert loaded.max_tokens_per_chunk == 700
        assert loaded.wave_delay_seconds == 0.25
        assert loaded.extract_relations is True
        assert loaded.structuring_batch_size is None
        assert loaded.openai_api_key is None


def test_profiles_ordered_by_page_ceiling() -> None:
    """Tier profiles are ordered with the open-ended tier last."""
    from study_kg.config.profiles import TIER_PROFILES

    ceilings = [p.max_pages for p in TIER_PROFILES]

    assert ceilings[-1] is None
    assert ceilings[:-1] == sorted(ceilings[:-1])
