from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from alertsync import __version__
from alertsync.api.deps import get_controller
from alertsync.controller import AlertController

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = __version__
    cluster: str
    pending_tasks: list[str] = []


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check(
    controller: AlertController = Depends(get_controller),  # noqa: B008
) -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        cluster=controller.settings.cluster_name,
        pending_tasks=controller.tasks.pending,
    )
