from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from alertsync.api.deps import get_controller, get_lifecycle, http_error
from alertsync.controller import AlertController
from alertsync.core.errors import AlertSyncError
from alertsync.domain.models import NotifierChannel, NotifierSettings
from alertsync.lifecycle import AlertLifecycle

router = APIRouter()


class NotifierBody(BaseModel):
    display_name: str = ""
    settings: NotifierSettings


@router.get("/notifiers", response_model=list[NotifierChannel])
async def list_notifiers(
    controller: AlertController = Depends(get_controller),  # noqa: B008
) -> list[NotifierChannel]:
    try:
        return await controller.store.list_notifiers(controller.settings.cluster_name)
    except AlertSyncError as exc:
        raise http_error(exc) from exc


@router.put("/notifiers/{name}", response_model=NotifierChannel)
async def save_notifier(
    name: str,
    payload: NotifierBody,
    controller: AlertController = Depends(get_controller),  # noqa: B008
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> NotifierChannel:
    notifier = NotifierChannel(
        cluster_name=controller.settings.cluster_name,
        name=name,
        display_name=payload.display_name,
        settings=payload.settings,
    )
    try:
        return await lifecycle.save_notifier(notifier)
    except AlertSyncError as exc:
        raise http_error(exc) from exc


@router.delete("/notifiers/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notifier(
    name: str,
    controller: AlertController = Depends(get_controller),  # noqa: B008
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> Response:
    try:
        await lifecycle.remove_notifier(controller.settings.cluster_name, name)
    except AlertSyncError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
