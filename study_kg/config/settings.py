"""
KGConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> pipeline = KnowledgeGraphPipeline(llm)

    >>> # Explicit configuration
    >>> config = KGConfig(
    ...     llm_model_bulk="gpt-4o-mini",
    ...     max_tokens_per_chunk=800,
    ... )
    >>> pipeline = KnowledgeGraphPipeline(llm, config=config)

    >>> # From config file
    >>> config = KGConfig.from_file("./study_kg.toml")

Environment Variables:
    STUDYKG_LLM_PROVIDER - LLM provider name
    STUDYKG_LLM_MODEL_BULK - Model for structuring and standard extraction
    STUDYKG_LLM_MODEL_QUALITY - Model for full-quality extraction
    STUDYKG_MAX_TOKENS_PER_CHUNK - Chunk size target
    STUDYKG_OVERLAP_TOKENS - Overlap carried between chunks
    STUDYKG_STRUCTURING_CONCURRENCY - Structuring requests in flight per wave
    STUDYKG_EXTRACTION_CONCURRENCY - Extraction requests in flight per wave
    STUDYKG_REQUEST_TIMEOUT_SECONDS - Per-call completion timeout
    STUDYKG_EXTRACT_RELATIONS - Enable relation extraction ("1", "true")
    STUDYKG_ENFORCE_TIME_BUDGET - Stop scheduling waves past the tier budget
    STUDYKG_COST_DEBUG - Attach a cost report to every result ("1", "true")
    STUDYKG_COST_DEBUG_WARN_THRESHOLD_USD - Cost warning threshold
    OPENAI_API_KEY - OpenAI API key (standard name)
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, cast

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

_TRUTHY = {"1", "true", "yes", "on"}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return cast(dict[str, Any], tomllib.load(f))


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


class KGConfig:
    """Configuration for StudyKG."""

    # === LLM Configuration ===

    llm_provider: str = "openai"
    """LLM provider: only "openai" is bundled"""

    llm_model_bulk: str = "gpt-4o-mini"
    """Model for chunk structuring and BALANCED / SMART_SAMPLING extraction"""

    llm_model_quality: str = "gpt-4o"
    """Model for FULL_QUALITY extraction"""

    # === API Keys ===

    openai_api_key: str | None = None

    # === Chunking Configuration ===

    max_tokens_per_chunk: int = 1200
    """Target chunk size in estimated tokens"""

    overlap_tokens: int = 150
    """Trailing sentences (in tokens) carried into the next chunk"""

    min_chunk_tokens: int = 80
    """A lone chunk below this size is structured locally without a model call"""

    clean_text: bool = False
    """Drop page-number and table-of-contents lines before chunking"""

    # === Processing Configuration ===

    structuring_batch_size: int | None = None
    """Chunks per structuring request (None = choose from chunk size)"""

    structuring_concurrency: int = 3
    """Structuring requests in flight per wave"""

    extraction_concurrency: int | None = None
    """Extraction requests in flight per wave (None = 2 for FULL_QUALITY, else 4)"""

    request_timeout_seconds: float = 60.0
    """Per-call completion timeout; a timeout is an ordinary batch failure"""

    wave_delay_seconds: float = 0.1
    """Courtesy delay between waves"""

    extract_relations: bool = False
    """Issue a second request per extraction batch for relations"""

    enforce_time_budget: bool = False
    """Stop scheduling extraction waves once the tier's time budget is spent"""

    # === Cost Telemetry Configuration ===

    cost_debug: bool = False
    """Attach a cost report to every pipeline result"""

    cost_debug_warn_threshold_usd: float | None = None
    """Optional warning threshold for per-run estimated cost"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        # Load from environment first
        self._load_from_env()

        # Apply explicit overrides
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.openai_api_key = os.getenv("OPENAI_API_KEY")

        if provider := os.getenv("STUDYKG_LLM_PROVIDER"):
            self.llm_provider = provider
        if model := os.getenv("STUDYKG_LLM_MODEL_BULK"):
            self.llm_model_bulk = model
        if model := os.getenv("STUDYKG_LLM_MODEL_QUALITY"):
            self.llm_model_quality = model
        if tokens := os.getenv("STUDYKG_MAX_TOKENS_PER_CHUNK"):
            self.max_tokens_per_chunk = int(tokens)
        if tokens := os.getenv("STUDYKG_OVERLAP_TOKENS"):
            self.overlap_tokens = int(tokens)
        if concurrency := os.getenv("STUDYKG_STRUCTURING_CONCURRENCY"):
            self.structuring_concurrency = int(concurrency)
        if concurrency := os.getenv("STUDYKG_EXTRACTION_CONCURRENCY"):
            self.extraction_concurrency = int(concurrency)
        if timeout := os.getenv("STUDYKG_REQUEST_TIMEOUT_SECONDS"):
            self.request_timeout_seconds = float(timeout)
        if flag := os.getenv("STUDYKG_EXTRACT_RELATIONS"):
            self.extract_relations = _env_flag(flag)
        if flag := os.getenv("STUDYKG_ENFORCE_TIME_BUDGET"):
            self.enforce_time_budget = _env_flag(flag)
        if flag := os.getenv("STUDYKG_COST_DEBUG"):
            self.cost_debug = _env_flag(flag)
        if threshold := os.getenv("STUDYKG_COST_DEBUG_WARN_THRESHOLD_USD"):
            self.cost_debug_warn_threshold_usd = float(threshold)

    @classmethod
    def from_file(cls, path: str | Path) -> "KGConfig":
        """
        Load configuration from TOML file.

        Sections are flattened into config keys; flat top-level keys are
        accepted as well.

        Example TOML:
            [llm]
            model_bulk = "gpt-4o-mini"
            model_quality = "gpt-4o"

            [chunking]
            max_tokens_per_chunk = 800

            [processing]
            extraction_concurrency = 2
            extract_relations = true

            [api_keys]
            openai = "sk-..."

        Args:
            path: Path to TOML configuration file

        Returns:
            KGConfig instance with values from file

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file names an unknown option
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        data = _load_toml(path)

        flat_config: dict[str, Any] = {}

        # Map section names to config key prefixes
        section_mapping = {
            "llm": "llm_",
            "api_keys": "",  # api_keys.openai -> openai_api_key
            "chunking": "",
            "processing": "",
            "cost_telemetry": "cost_debug_",
        }

        for section, prefix in section_mapping.items():
            if section in data:
                for key, value in data[section].items():
                    if section == "api_keys":
                        flat_config[f"{key}_api_key"] = value
                    else:
                        flat_config[f"{prefix}{key}"] = value

        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "KGConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        API keys are never written; unset optional values are omitted.

        Args:
            path: Path to write TOML configuration file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "llm": {
                "provider": self.llm_provider,
                "model_bulk": self.llm_model_bulk,
                "model_quality": self.llm_model_quality,
            },
            "chunking": {
                "max_tokens_per_chunk": self.max_tokens_per_chunk,
                "overlap_tokens": self.overlap_tokens,
                "min_chunk_tokens": self.min_chunk_tokens,
                "clean_text": self.clean_text,
            },
            "processing": {
                "structuring_batch_size": self.structuring_batch_size,
                "structuring_concurrency": self.structuring_concurrency,
                "extraction_concurrency": self.extraction_concurrency,
                "request_timeout_seconds": self.request_timeout_seconds,
                "wave_delay_seconds": self.wave_delay_seconds,
                "extract_relations": self.extract_relations,
                "enforce_time_budget": self.enforce_time_budget,
            },
            "cost_telemetry": {
                "warn_threshold_usd": self.cost_debug_warn_threshold_usd,
            },
        }

        lines = ["# StudyKG Configuration", ""]

        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# API keys should be set via environment variables:",
            "# OPENAI_API_KEY",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "KGConfig":
        """Return new config with specified overrides."""
        new_config = KGConfig.__new__(KGConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config

    def extraction_concurrency_for(self, full_quality: bool) -> int:
        """Wave size for extraction, honouring an explicit override."""
        if self.extraction_concurrency is not None:
            return max(1, self.extraction_concurrency)
        return 2 if full_quality else 4
