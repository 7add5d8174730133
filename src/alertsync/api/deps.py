from __future__ import annotations

from fastapi import HTTPException, Request, status

from alertsync.controller import AlertController
from alertsync.core.errors import (
    AlertSyncError,
    EngineError,
    RuleNotFoundError,
    format_error_message,
)
from alertsync.lifecycle import AlertLifecycle


def get_controller(request: Request) -> AlertController:
    return request.app.state.controller


def get_lifecycle(request: Request) -> AlertLifecycle:
    return get_controller(request).lifecycle


def http_error(exc: AlertSyncError) -> HTTPException:
    detail = format_error_message(exc)
    if isinstance(exc, RuleNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if isinstance(exc, EngineError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
