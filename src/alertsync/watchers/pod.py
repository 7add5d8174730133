"""
Pod health watcher for project alert rules.

Handles the three pod conditions: not scheduled, not running and restart
rate. Restart rate goes through the RestartTracker so only restarts within
the rule's interval count towards its threshold.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import structlog

from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.core.errors import AlertSyncError, ConfigurationError, PodSourceError
from alertsync.db.repositories import RuleStore
from alertsync.domain.models import (
    AlertRule,
    AlertState,
    PodNotRunningCondition,
    PodNotScheduledCondition,
    PodRestartsCondition,
)
from alertsync.watchers.restart_tracker import RestartTracker

logger = structlog.get_logger()


@dataclass(frozen=True)
class ContainerState:
    name: str
    restart_count: int = 0
    running: bool = True
    message: str = ""


@dataclass(frozen=True)
class PodStatus:
    namespace: str
    name: str
    scheduled: bool = True
    schedule_message: str = ""
    containers: tuple[ContainerState, ...] = ()

    def first_not_running(self) -> ContainerState | None:
        return next((c for c in self.containers if not c.running), None)


class PodSource(Protocol):
    async def get_pod(self, namespace: str, name: str) -> PodStatus | None: ...


def split_pod_id(pod_id: str) -> tuple[str, str] | None:
    namespace, sep, name = pod_id.partition(":")
    if not sep or not namespace or not name:
        return None
    return namespace, name


@dataclass
class KubernetesPodSource:
    """Reads pod status through the official Kubernetes client."""

    kubeconfig: str | None = None
    context: str | None = None
    timeout: float = 30.0

    _core_api: Any = field(default=None, repr=False, compare=False)

    def _api(self) -> Any:
        if self._core_api is not None:
            return self._core_api
        try:
            from kubernetes import client, config
        except ImportError as exc:
            raise ConfigurationError(
                "kubernetes package not installed. Install with: pip install alertsync[kubernetes]"
            ) from exc

        try:
            config.load_incluster_config()
        except config.ConfigException:
            try:
                config.load_kube_config(config_file=self.kubeconfig, context=self.context)
            except config.ConfigException as e:
                raise ConfigurationError(f"Failed to load Kubernetes config: {e}") from e

        self._core_api = client.CoreV1Api()
        return self._core_api

    async def get_pod(self, namespace: str, name: str) -> PodStatus | None:
        from kubernetes.client.exceptions import ApiException
        from urllib3.exceptions import HTTPError

        try:
            pod = await asyncio.to_thread(
                self._api().read_namespaced_pod,
                name,
                namespace,
                _request_timeout=self.timeout,
            )
        except ApiException as exc:
            if exc.status == 404:
                return None
            raise PodSourceError(
                f"Failed to read pod {namespace}:{name}: {exc.status} {exc.reason}",
                details={"status": exc.status},
            ) from exc
        except (HTTPError, OSError) as exc:
            raise PodSourceError(f"Failed to read pod {namespace}:{name}: {exc}") from exc
        return self._to_status(pod)

    @staticmethod
    def _to_status(pod: Any) -> PodStatus:
        status = pod.status
        scheduled, schedule_message = True, ""
        for condition in status.conditions or []:
            if condition.type == "PodScheduled" and condition.status == "False":
                scheduled, schedule_message = False, condition.message or ""

        containers = []
        for cs in status.container_statuses or []:
            state = cs.state
            message = ""
            if state is not None and state.waiting is not None:
                message = state.waiting.message or state.waiting.reason or ""
            if state is not None and state.terminated is not None:
                message = state.terminated.message or state.terminated.reason or ""
            containers.append(
                ContainerState(
                    name=cs.name,
                    restart_count=cs.restart_count or 0,
                    running=state is not None and state.running is not None,
                    message=message,
                )
            )

        return PodStatus(
            namespace=pod.metadata.namespace,
            name=pod.metadata.name,
            scheduled=scheduled,
            schedule_message=schedule_message,
            containers=tuple(containers),
        )


class PodWatcher:
    def __init__(
        self,
        store: RuleStore,
        source: PodSource,
        client: AlertmanagerClient,
        tracker: RestartTracker,
        cluster_name: str,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._source = source
        self._client = client
        self._tracker = tracker
        self._cluster_name = cluster_name
        self._clock = clock

    @property
    def tracker(self) -> RestartTracker:
        return self._tracker

    async def watch_once(self) -> int:
        """Evaluate every pod rule once; returns the number of alerts fired."""
        try:
            rules = await self._store.list_project_rules(self._cluster_name)
        except AlertSyncError as exc:
            logger.error("rule_list_failed", cluster=self._cluster_name, error=exc.message)
            return 0

        fired = 0
        for rule in rules:
            if rule.state == AlertState.inactive:
                continue
            if not isinstance(
                rule.condition,
                (PodNotRunningCondition, PodNotScheduledCondition, PodRestartsCondition),
            ):
                continue
            try:
                if await self.check(rule):
                    fired += 1
            except AlertSyncError as exc:
                logger.error("pod_check_failed", alert_id=rule.alert_id, error=exc.message)
        return fired

    async def check(self, rule: AlertRule) -> bool:
        condition = rule.condition
        target = split_pod_id(condition.pod_id)
        if target is None:
            logger.warning("invalid_pod_target", alert_id=rule.alert_id, pod_id=condition.pod_id)
            return False

        pod = await self._source.get_pod(*target)
        if pod is None:
            logger.info("pod_not_found", alert_id=rule.alert_id, pod_id=condition.pod_id)
            return False

        if isinstance(condition, PodNotScheduledCondition):
            return await self._check_scheduled(rule, pod)
        if isinstance(condition, PodNotRunningCondition):
            if not await self._check_scheduled(rule, pod):
                return await self._check_running(rule, pod)
            return True
        return await self._check_restarts(rule, condition, pod)

    async def _check_scheduled(self, rule: AlertRule, pod: PodStatus) -> bool:
        """Fire when the pod could not be scheduled; True when an alert was sent."""
        if pod.scheduled:
            return False
        title = f"The Pod {pod.name} is not scheduled"
        text = self._describe(rule, pod, f"*Pod Name*: {pod.name}", pod.schedule_message)
        await self._client.send_alert(rule.alert_id, text, title, rule.severity.value)
        return True

    async def _check_running(self, rule: AlertRule, pod: PodStatus) -> bool:
        container = pod.first_not_running()
        if container is None:
            return False
        title = f"The Pod {pod.name} is not running"
        text = self._describe(rule, pod, f"*Container Name*: {container.name}", container.message)
        await self._client.send_alert(rule.alert_id, text, title, rule.severity.value)
        return True

    async def _check_restarts(
        self, rule: AlertRule, condition: PodRestartsCondition, pod: PodStatus
    ) -> bool:
        container = pod.first_not_running()
        if container is None:
            return False

        observation = self._tracker.observe(
            rule.key,
            container.restart_count,
            self._clock(),
            condition.restart_interval_seconds,
        )
        if not observation.exceeds(condition.restart_threshold):
            return False

        minutes = max(1, condition.restart_interval_seconds // 60)
        title = f"The Pod {pod.name} restarts {observation.increase} times in {minutes} mins"
        text = self._describe(rule, pod, f"*Container Name*: {container.name}", container.message)
        await self._client.send_alert(rule.alert_id, text, title, rule.severity.value)
        return True

    def _describe(self, rule: AlertRule, pod: PodStatus, subject: str, details: str) -> str:
        return (
            f"*Alert Name*: {rule.display_name or rule.name}\n"
            f"*Cluster Name*: {self._cluster_name}\n"
            f"*Namespace*: {pod.namespace}\n"
            f"{subject}\n"
            f"*Logs*: {details}"
        )
