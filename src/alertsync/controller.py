"""
Wires the reconciler together from Settings and runs its loops.

One controller serves one cluster: it owns the Alertmanager client, the
background reload tasks and the database engine, and closes all three on
shutdown.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.config import Settings, get_settings
from alertsync.core.errors import AlertSyncError, ConfigurationError
from alertsync.db.repositories import MutableRuleStore, SqlRuleStore
from alertsync.db.session import dispose_engine, init_engine
from alertsync.lifecycle import AlertLifecycle
from alertsync.storage.config_store import (
    ConfigStore,
    FileConfigStore,
    KubernetesSecretConfigStore,
)
from alertsync.sync.config_syncer import ConfigSyncer
from alertsync.sync.loop import run_periodically
from alertsync.sync.publisher import ConfigPublisher
from alertsync.sync.state_syncer import StateSyncer
from alertsync.sync.tasks import BackgroundTasks
from alertsync.watchers.pod import KubernetesPodSource, PodSource, PodWatcher
from alertsync.watchers.restart_tracker import RestartTracker

logger = structlog.get_logger()


def build_config_store(settings: Settings) -> ConfigStore:
    if settings.config_store_backend == "file":
        return FileConfigStore(Path(settings.config_dir))
    if settings.config_store_backend == "kubernetes":
        return KubernetesSecretConfigStore(
            namespace=settings.config_secret_namespace,
            secret_name=settings.config_secret_name,
            kubeconfig=settings.kubeconfig,
            context=settings.kube_context,
        )
    raise ConfigurationError(
        f"Unsupported config store backend: {settings.config_store_backend}",
        details={"backend": settings.config_store_backend},
    )


def build_client(settings: Settings) -> AlertmanagerClient:
    return AlertmanagerClient(
        settings.alertmanager_url,
        created_by=settings.silence_created_by,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
        backoff_factor=settings.http_retry_backoff_factor,
        circuit_failure_threshold=settings.http_circuit_failure_threshold,
        circuit_recovery_timeout=settings.http_circuit_recovery_timeout,
    )


class AlertController:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: MutableRuleStore | None = None,
        client: AlertmanagerClient | None = None,
        config_store: ConfigStore | None = None,
        pod_source: PodSource | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        cluster = self.settings.cluster_name

        self._owns_engine = store is None
        self.store: MutableRuleStore = store or SqlRuleStore(init_engine(self.settings))
        self.client = client or build_client(self.settings)
        self.tasks = BackgroundTasks()
        self.publisher = ConfigPublisher(
            config_store or build_config_store(self.settings),
            self.client,
            self.tasks,
            reload_attempts=self.settings.reload_max_attempts,
            reload_interval=self.settings.reload_interval_seconds,
        )
        self.config_syncer = ConfigSyncer(self.store, self.publisher, cluster)
        self.state_syncer = StateSyncer(self.store, self.client, cluster)
        self.tracker = RestartTracker(max_samples=self.settings.restart_history_limit)
        self.pod_watcher = PodWatcher(
            self.store,
            pod_source
            or KubernetesPodSource(
                kubeconfig=self.settings.kubeconfig,
                context=self.settings.kube_context,
                timeout=self.settings.http_timeout,
            ),
            self.client,
            self.tracker,
            cluster,
        )
        self.lifecycle = AlertLifecycle(self.store, self.client, self.config_syncer, self.tracker)

    async def initial_sync(self) -> bool:
        try:
            await self.config_syncer.sync()
        except AlertSyncError as exc:
            logger.error("initial_config_sync_failed", error=exc.message)
            return False
        return True

    async def run(self, stop: asyncio.Event) -> None:
        """Publish the config once, then run the state and pod loops until stopped."""
        logger.info("controller_started", cluster=self.settings.cluster_name)
        await self.initial_sync()
        await asyncio.gather(
            run_periodically(
                "state-sync",
                self.state_syncer.sync_once,
                self.settings.state_sync_interval_seconds,
                stop,
            ),
            run_periodically(
                "pod-watch",
                self.pod_watcher.watch_once,
                self.settings.pod_watch_interval_seconds,
                stop,
            ),
        )

    async def close(self) -> None:
        await self.tasks.shutdown()
        await self.client.aclose()
        if self._owns_engine:
            await dispose_engine()
        logger.info("controller_stopped", cluster=self.settings.cluster_name)
