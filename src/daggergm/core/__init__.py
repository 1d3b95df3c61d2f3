"""Core module providing configuration, logging, constants and exceptions.

Exports:
    Exceptions:
        DaggerGMError: Base exception for all engine errors.
        ValidationError, ReferenceResolutionError, LimitExceededError,
        NotExpandedError, NotFoundError, AuthorizationError, ...

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from daggergm.core.config import (
    AIProviderSettings,
    GenerationSettings,
    RetrievalSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from daggergm.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ContentStoreError,
    DaggerGMError,
    EmbeddingError,
    InvalidStateTransitionError,
    LimitExceededError,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    NotExpandedError,
    NotFoundError,
    PersistenceError,
    ReferenceResolutionError,
    TierViolationError,
    ValidationError,
)
from daggergm.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "DaggerGMError",
    # Configuration & validation exceptions
    "ConfigurationError",
    "ValidationError",
    "TierViolationError",
    "ReferenceResolutionError",
    # Workflow exceptions
    "LimitExceededError",
    "InvalidStateTransitionError",
    "NotExpandedError",
    "NotFoundError",
    "AuthorizationError",
    # Content & persistence exceptions
    "ContentStoreError",
    "EmbeddingError",
    "PersistenceError",
    # LLM exceptions
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMResponseError",
    # Configuration
    "Settings",
    "AIProviderSettings",
    "RetrievalSettings",
    "GenerationSettings",
    "StorageSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
