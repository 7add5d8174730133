from __future__ import annotations

import asyncio

import structlog

from alertsync.alertmanager.compiler import compile_config
from alertsync.alertmanager.config import AlertmanagerConfig
from alertsync.db.repositories import RuleStore
from alertsync.sync.publisher import ConfigPublisher

logger = structlog.get_logger()


class ConfigSyncer:
    """Rebuilds and publishes the Alertmanager config from the rule store."""

    def __init__(self, store: RuleStore, publisher: ConfigPublisher, cluster_name: str) -> None:
        self._store = store
        self._publisher = publisher
        self._cluster_name = cluster_name
        self._lock = asyncio.Lock()

    async def render(self) -> AlertmanagerConfig:
        cluster_rules = await self._store.list_cluster_rules(self._cluster_name)
        project_rules = await self._store.list_project_rules(self._cluster_name)
        notifiers = await self._store.list_notifiers(self._cluster_name)
        return compile_config([*cluster_rules, *project_rules], notifiers)

    async def sync(self) -> AlertmanagerConfig:
        """Compile and publish; store and storage errors propagate."""
        async with self._lock:
            logger.info("config_sync_started", cluster=self._cluster_name)
            config = await self.render()
            await self._publisher.publish(config)
            return config
