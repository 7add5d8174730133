from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError

__all__ = ["AlertmanagerClient", "BaseHTTPClient", "PermanentHTTPError", "RetryableHTTPError"]
