"""Configuration management for the DaggerGM generation engine.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.
API keys are handled with SecretStr.

Example:
    >>> from daggergm.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.retrieval.embedding_dimension
    1536

Environment Variables:
    DAGGERGM_OPENAI_API_KEY: OpenAI API key
    DAGGERGM_CHAT_MODEL: Chat completion model used for generation
    DAGGERGM_MAX_ATTEMPTS: Attempts per LLM call for transient failures
    DAGGERGM_DATABASE_PATH: Path to the SQLite database
    DAGGERGM_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from daggergm.core.constants import EMBEDDING_DIMENSION, MAX_SCENES, MIN_SCENES
from daggergm.core.exceptions import ConfigurationError


class AIProviderSettings(BaseSettings):
    """Configuration for the LLM provider connection.

    Attributes:
        openai_api_key: OpenAI API key.
        base_url: Optional OpenAI-compatible endpoint.
        chat_model: Model used for scaffold and expansion calls.
        timeout_seconds: Per-request timeout.
        max_attempts: Attempts for transient failures (first call included).
        retry_backoff_seconds: Base multiplier for exponential backoff.
        retry_backoff_max_seconds: Upper bound for a single backoff wait.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERGM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    base_url: str | None = Field(
        default=None,
        description="OpenAI-compatible API base URL",
    )
    chat_model: str = Field(
        default="gpt-4o",
        description="Chat completion model",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=3,
        description="Attempts per call for transient failures",
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        le=10,
        description="Exponential backoff multiplier",
    )
    retry_backoff_max_seconds: float = Field(
        default=10.0,
        ge=0,
        le=60,
        description="Maximum single backoff wait",
    )


class RetrievalSettings(BaseSettings):
    """Configuration for embeddings and candidate retrieval.

    Attributes:
        embedding_model: Model used for query and content embeddings.
        embedding_dimension: Expected embedding vector length.
        embedding_batch_size: Texts per embedding request when seeding.
        adversary_limit: Adversary candidates offered per expansion.
        environment_limit: Environment candidates offered per expansion.
        npc_reference_limit: Class/ancestry/community candidates each.
        loot_limit: Weapon/armor/item/consumable candidates each.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERGM_RETRIEVAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model to use",
    )
    embedding_dimension: int = Field(
        default=EMBEDDING_DIMENSION,
        ge=1,
        description="Embedding vector dimension",
    )
    embedding_batch_size: int = Field(
        default=100,
        ge=1,
        le=2048,
        description="Texts per embedding request",
    )
    adversary_limit: int = Field(default=5, ge=1, le=20)
    environment_limit: int = Field(default=3, ge=1, le=20)
    npc_reference_limit: int = Field(default=5, ge=1, le=20)
    loot_limit: int = Field(default=4, ge=1, le=20)


class GenerationSettings(BaseSettings):
    """Configuration for prompt construction and sampling.

    Attributes:
        default_scene_count: Scenes requested when the caller gives none.
        scaffold_temperature: Temperature for scaffold generation.
        combat_temperature: Temperature for combat scene expansion.
        social_temperature: Temperature for social scene expansion.
        description_temperature: Temperature for exploration/puzzle scenes.
        refinement_temperature: Temperature for targeted rewrites.
        max_tokens: Completion token cap per request.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERGM_GENERATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_scene_count: int = Field(default=MIN_SCENES, ge=MIN_SCENES, le=MAX_SCENES)
    scaffold_temperature: float = Field(default=0.75, ge=0, le=2)
    combat_temperature: float = Field(default=0.5, ge=0, le=2)
    social_temperature: float = Field(default=0.9, ge=0, le=2)
    description_temperature: float = Field(default=0.8, ge=0, le=2)
    refinement_temperature: float = Field(default=0.6, ge=0, le=2)
    max_tokens: int = Field(default=4096, ge=256, le=16384)


class StorageSettings(BaseSettings):
    """Configuration for the SQLite database.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERGM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/daggergm.db"),
        description="Path to SQLite database",
    )

    @field_validator("database_path", mode="after")
    @classmethod
    def ensure_parent_exists(cls, value: Path) -> Path:
        """Create the database directory if necessary."""
        value.parent.mkdir(parents=True, exist_ok=True)
        return value


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        log_level: Application logging level.
        log_json: Render logs as JSON.
        ai: LLM provider settings.
        retrieval: Embedding and retrieval settings.
        generation: Prompt and sampling settings.
        storage: Database settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAGGERGM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Render logs as JSON")

    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @model_validator(mode="after")
    def validate_retry_window(self) -> "Settings":
        """Ensure the backoff cap is not below the backoff multiplier.

        Raises:
            ConfigurationError: If retry_backoff_max_seconds < retry_backoff_seconds.
        """
        if self.ai.retry_backoff_max_seconds < self.ai.retry_backoff_seconds:
            raise ConfigurationError(
                f"retry_backoff_max_seconds ({self.ai.retry_backoff_max_seconds}) must be "
                f"at least retry_backoff_seconds ({self.ai.retry_backoff_seconds})",
                config_key="retry_backoff_max_seconds",
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    This is primarily useful for testing or when environment variables
    have changed at runtime.
    """
    get_settings.cache_clear()


__all__ = [
    "AIProviderSettings",
    "RetrievalSettings",
    "GenerationSettings",
    "StorageSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
