"""
alertsync configuration.

Pydantic-based settings loaded from ALERTSYNC_* environment variables
and an optional .env file.
"""

from alertsync.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
