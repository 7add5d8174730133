"""Core error types shared across alertsync."""

from alertsync.core.errors import (
    AlertSyncError,
    ConfigStoreError,
    ConfigurationError,
    EngineError,
    EngineProtocolError,
    ExitCode,
    RuleNotFoundError,
    RuleStoreError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "AlertSyncError",
    "ConfigStoreError",
    "ConfigurationError",
    "EngineError",
    "EngineProtocolError",
    "ExitCode",
    "RuleNotFoundError",
    "RuleStoreError",
    "format_error_message",
    "main_with_error_handling",
]
