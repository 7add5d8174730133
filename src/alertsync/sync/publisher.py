"""
Publish a compiled Alertmanager config: store it, then reload the engine.

The store write is awaited and its failure propagates. The reload runs as
an owned background task that reloads a fixed number of times whatever the
response. A mounted secret reaches Alertmanager only after the kubelet
syncs it, so an early successful reload may still read the old file.
"""

from __future__ import annotations

import asyncio

import structlog

from alertsync.alertmanager.config import AlertmanagerConfig
from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.core.errors import AlertSyncError
from alertsync.storage.config_store import ConfigStore
from alertsync.sync.tasks import BackgroundTasks

logger = structlog.get_logger()

RELOAD_TASK = "alertmanager-reload"


class ConfigPublisher:
    def __init__(
        self,
        store: ConfigStore,
        client: AlertmanagerClient,
        tasks: BackgroundTasks,
        *,
        reload_attempts: int = 10,
        reload_interval: float = 10.0,
    ) -> None:
        self._store = store
        self._client = client
        self._tasks = tasks
        self._reload_attempts = max(1, reload_attempts)
        self._reload_interval = reload_interval

    async def publish(self, config: AlertmanagerConfig) -> None:
        """Store the document and schedule a reload."""
        await self._store.write(config.to_yaml())
        logger.info(
            "config_published",
            receivers=len(config.receivers),
            routes=len(config.route.routes),
        )
        self._tasks.spawn(self.reload_with_retry(), name=RELOAD_TASK)

    async def reload_with_retry(self) -> bool:
        """Reload on every attempt; True when at least one reload was accepted."""
        reloaded = 0
        for attempt in range(1, self._reload_attempts + 1):
            try:
                await self._client.reload()
            except AlertSyncError as exc:
                logger.warning(
                    "config_reload_failed",
                    attempt=attempt,
                    max_attempts=self._reload_attempts,
                    error=str(exc),
                )
            else:
                reloaded += 1
                logger.debug("config_reloaded", attempt=attempt)

            if attempt < self._reload_attempts:
                await asyncio.sleep(self._reload_interval)

        if not reloaded:
            logger.error("config_reload_abandoned", attempts=self._reload_attempts)
            return False
        logger.info("config_reload_finished", attempts=self._reload_attempts, reloaded=reloaded)
        return True
