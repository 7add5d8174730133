"""
Unified error handling for alertsync.

Errors raised by the store, engine client and config storage all derive
from AlertSyncError so loop ticks can catch them at one level and CLI
commands can map them to exit codes.

Exit Codes:
- 0: Success
- 10: Configuration error
- 11: Engine error (Alertmanager or the Kubernetes API unreachable, protocol failure)
- 12: Storage error (rule store or config storage)
- 13: Not found
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    ENGINE_ERROR = 11
    STORAGE_ERROR = 12
    NOT_FOUND = 13
    UNKNOWN_ERROR = 127


class AlertSyncError(Exception):
    """Base exception for alertsync errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(AlertSyncError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class EngineError(AlertSyncError):
    """Raised when Alertmanager cannot be reached or rejects a request."""

    exit_code = ExitCode.ENGINE_ERROR


class EngineProtocolError(EngineError):
    """Raised when Alertmanager answers with an unexpected payload."""


class ConfigStoreError(AlertSyncError):
    """Raised when the compiled config cannot be written to storage."""

    exit_code = ExitCode.STORAGE_ERROR


class RuleStoreError(AlertSyncError):
    """Raised when the rule store cannot be read or written."""

    exit_code = ExitCode.STORAGE_ERROR


class PodSourceError(AlertSyncError):
    """Raised when pod status cannot be read from the Kubernetes API."""

    exit_code = ExitCode.ENGINE_ERROR


class RuleNotFoundError(AlertSyncError):
    """Raised when an alert rule or notifier does not exist."""

    exit_code = ExitCode.NOT_FOUND


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Exit codes:
        - AlertSyncError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except AlertSyncError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: AlertSyncError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
