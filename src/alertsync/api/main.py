from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from alertsync import __version__
from alertsync.api.routes import alerts, config, health, notifiers
from alertsync.config import get_settings
from alertsync.controller import AlertController
from alertsync.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level.upper())
    if getattr(app.state, "controller", None) is None:
        app.state.controller = AlertController(settings)
    controller: AlertController = app.state.controller

    stop = asyncio.Event()
    runner = asyncio.create_task(controller.run(stop), name="alertsync-controller")
    try:
        yield
    finally:
        stop.set()
        await asyncio.gather(runner, return_exceptions=True)
        await controller.close()


def create_app(controller: AlertController | None = None) -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="alertsync API",
        version=__version__,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )
    app.state.controller = controller

    app.include_router(alerts.router, prefix=settings.api_prefix, tags=["alerts"])
    app.include_router(notifiers.router, prefix=settings.api_prefix, tags=["notifiers"])
    app.include_router(config.router, prefix=settings.api_prefix, tags=["config"])
    app.include_router(health.router, tags=["health"])
    return app
