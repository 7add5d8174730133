from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from alertsync.api.deps import get_controller, http_error
from alertsync.controller import AlertController
from alertsync.core.errors import AlertSyncError

router = APIRouter()


@router.get("/config", response_class=PlainTextResponse)
async def preview_config(
    controller: AlertController = Depends(get_controller),  # noqa: B008
) -> str:
    """Render the Alertmanager config the current rules compile to, without publishing it."""
    try:
        config = await controller.config_syncer.render()
    except AlertSyncError as exc:
        raise http_error(exc) from exc
    return config.to_yaml()
