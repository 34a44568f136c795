# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider credentials, search tunables,
pipeline pacing, cache TTLs and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS: tuple[str, ...] = (
    "openai",
    "cohere",
    "voyage",
    "ollama",
    "sentence_transformers",
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === EMBEDDING PROVIDERS ===
    # Registration order; ties in priority keep this order.
    embedding_providers: str = "openai,cohere"
    provider_timeout_s: float = 30.0

    openai_api_key: str = ""
    openai_embedding_model: str = "text-embedding-3-small"
    openai_embedding_dimensions: int = 1536
    openai_priority: int = 1

    cohere_api_key: str = ""
    cohere_model: str = "embed-english-v3.0"
    cohere_dimensions: int = 1024
    cohere_priority: int = 2

    voyage_api_key: str = ""
    voyage_model: str = "voyage-3"
    voyage_dimensions: int = 1024
    voyage_priority: int = 3

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "nomic-embed-text"
    ollama_dimensions: int = 768
    ollama_priority: int = 4

    st_model: str = "all-MiniLM-L6-v2"
    st_dimensions: int = 384
    st_priority: int = 5

    # === Semantic / hybrid search ===
    search_similarity_threshold: float = 0.55
    search_default_limit: int = 12
    hybrid_boost_factor: float = 1.2
    hybrid_keyword_score: float = 0.5

    # === Embedding pipeline ===
    pipeline_fill_delay_s: float = 0.5
    pipeline_regenerate_delay_s: float = 2.0
    embedding_min_content_length: int = 20

    # === Result cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "redis"] = "memory"
    cache_redis_url: str = ""
    cache_key_prefix: str = "clouddocs:cache:"
    cache_ttl_documents_s: int = 30 * 60
    cache_ttl_users_s: int = 15 * 60
    cache_ttl_workflows_s: int = 10 * 60
    cache_ttl_ocr_s: int = 2 * 60 * 60
    cache_ttl_classifications_s: int = 6 * 60 * 60
    cache_ttl_dashboard_s: int = 5 * 60
    cache_ttl_search_s: int = 10 * 60
    cache_ttl_custom_s: int = 30 * 60
    cache_dashboard_clear_interval_s: float = 10 * 60
    cache_daily_maintenance_interval_s: float = 24 * 60 * 60

    # === Document store (CLI) ===
    document_store_path: Path = Path("~/.docsemantic/documents.json")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("search_similarity_threshold", "hybrid_keyword_score")
    @classmethod
    def validate_unit_interval(cls, v: float, info) -> float:  # noqa: N805
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"{info.field_name} must be within [0, 1]")
        return v

    @field_validator("pipeline_fill_delay_s", "pipeline_regenerate_delay_s")
    @classmethod
    def validate_non_negative(cls, v: float, info) -> float:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @field_validator(
        "provider_timeout_s",
        "cache_dashboard_clear_interval_s",
        "cache_daily_maintenance_interval_s",
    )
    @classmethod
    def validate_positive(cls, v: float, info) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("hybrid_boost_factor")
    @classmethod
    def validate_boost(cls, v: float) -> float:  # noqa: N805
        """A boost below 1 would rank double hits under single hits."""
        if v < 1.0:
            raise ValueError("hybrid_boost_factor must be >= 1.0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        unknown = [p for p in self.embedding_providers_list if p not in KNOWN_PROVIDERS]
        if unknown:
            errors.append(
                f"EMBEDDING_PROVIDERS contains unknown providers: {', '.join(unknown)}"
            )

        names = self.embedding_providers_list
        duplicates = sorted({p for p in names if names.count(p) > 1})
        if duplicates:
            errors.append(
                f"EMBEDDING_PROVIDERS lists providers more than once: {', '.join(duplicates)}"
            )

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.search_default_limit <= 0:
            errors.append("SEARCH_DEFAULT_LIMIT must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def embedding_providers_list(self) -> list[str]:
        """Parse comma-separated provider names, preserving order."""
        return [p.strip() for p in self.embedding_providers.split(",") if p.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-scope config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
