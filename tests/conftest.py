"""Root test configuration."""

from __future__ import annotations

import logging
from typing import Any

import pytest
import structlog

from alertsync.core.errors import EngineError, RuleNotFoundError, RuleStoreError
from alertsync.domain.models import (
    AlertRule,
    AlertScope,
    AlertState,
    EngineAlert,
    NotifierChannel,
    RecipientBinding,
    SlackSettings,
)


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class MemoryRuleStore:
    """Dict-backed rule store with the same conditional-update contract as SqlRuleStore."""

    def __init__(self) -> None:
        self.rules: dict[tuple[str, str], AlertRule] = {}
        self.notifiers: dict[tuple[str, str], NotifierChannel] = {}
        self.state_writes: list[tuple[str, AlertState]] = []
        self.fail_reads = False

    def _check(self) -> None:
        if self.fail_reads:
            raise RuleStoreError("store offline")

    async def list_cluster_rules(self, cluster_name: str) -> list[AlertRule]:
        self._check()
        return [
            r
            for r in self.rules.values()
            if r.scope == AlertScope.cluster and r.cluster_name == cluster_name
        ]

    async def list_project_rules(self, cluster_name: str) -> list[AlertRule]:
        self._check()
        return [
            r
            for r in self.rules.values()
            if r.scope == AlertScope.project and r.cluster_name == cluster_name
        ]

    async def list_notifiers(self, cluster_name: str) -> list[NotifierChannel]:
        self._check()
        return [n for n in self.notifiers.values() if n.cluster_name == cluster_name]

    async def get_rule(self, namespace: str, name: str) -> AlertRule:
        try:
            return self.rules[(namespace, name)]
        except KeyError:
            raise RuleNotFoundError(f"Alert rule {namespace}/{name} not found") from None

    async def save_rule(self, rule: AlertRule) -> AlertRule:
        current = self.rules.get((rule.namespace, rule.name))
        version = current.resource_version + 1 if current else 1
        saved = rule.model_copy(update={"resource_version": version})
        self.rules[(rule.namespace, rule.name)] = saved
        return saved

    async def delete_rule(self, namespace: str, name: str) -> AlertRule:
        rule = await self.get_rule(namespace, name)
        del self.rules[(namespace, name)]
        return rule

    async def update_rule_state(self, rule: AlertRule, state: AlertState) -> bool:
        current = self.rules.get((rule.namespace, rule.name))
        if current is None or current.resource_version != rule.resource_version:
            return False
        self.rules[(rule.namespace, rule.name)] = current.model_copy(
            update={"state": state, "resource_version": current.resource_version + 1}
        )
        self.state_writes.append((rule.alert_id, state))
        return True

    async def save_notifier(self, notifier: NotifierChannel) -> NotifierChannel:
        self.notifiers[(notifier.cluster_name, notifier.name)] = notifier
        return notifier

    async def delete_notifier(self, cluster_name: str, name: str) -> NotifierChannel:
        try:
            return self.notifiers.pop((cluster_name, name))
        except KeyError:
            raise RuleNotFoundError(f"Notifier {cluster_name}:{name} not found") from None


class StubEngine:
    """Records the Alertmanager calls made by syncers, watchers and actions."""

    def __init__(self, alerts: list[EngineAlert] | None = None) -> None:
        self.alerts = alerts or []
        self.silenced: list[str] = []
        self.unsilenced: list[str] = []
        self.sent: list[dict[str, Any]] = []
        self.reloads = 0
        self.fail_list = False
        self.fail_silence = False
        self.closed = False

    async def list_alerts(self) -> list[EngineAlert]:
        if self.fail_list:
            raise EngineError("alertmanager unreachable")
        return list(self.alerts)

    async def add_silence(self, alert_id: str, *, comment: str = "silence") -> str:
        if self.fail_silence:
            raise EngineError("silence rejected")
        self.silenced.append(alert_id)
        return f"silence-{len(self.silenced)}"

    async def remove_silence(self, alert_id: str) -> int:
        if self.fail_silence:
            raise EngineError("silence rejected")
        self.unsilenced.append(alert_id)
        return 1

    async def send_alert(self, alert_id: str, text: str, title: str, severity: str) -> None:
        self.sent.append({"alert_id": alert_id, "text": text, "title": title, "severity": severity})

    async def reload(self) -> None:
        self.reloads += 1

    async def aclose(self) -> None:
        self.closed = True


class MemoryConfigStore:
    def __init__(self) -> None:
        self.data: str | None = None
        self.writes = 0

    async def read(self) -> str | None:
        return self.data

    async def write(self, data: str) -> None:
        self.writes += 1
        self.data = data


def build_rule(
    namespace: str = "p1",
    name: str = "r1",
    *,
    scope: AlertScope = AlertScope.cluster,
    cluster_name: str = "c1",
    state: AlertState = AlertState.active,
    condition: dict[str, Any] | None = None,
    recipients: list[RecipientBinding] | None = None,
    **extra: Any,
) -> AlertRule:
    return AlertRule(
        namespace=namespace,
        name=name,
        scope=scope,
        cluster_name=cluster_name,
        state=state,
        condition=condition or {"kind": "node_not_ready", "target_id": "node-1"},
        recipients=recipients or [],
        **extra,
    )


def build_slack_notifier(name: str = "n1", cluster_name: str = "c1") -> NotifierChannel:
    return NotifierChannel(
        cluster_name=cluster_name,
        name=name,
        settings=SlackSettings(url="https://hooks.slack.example/T000", default_recipient="#ops"),
    )


@pytest.fixture
def rule_store() -> MemoryRuleStore:
    return MemoryRuleStore()


@pytest.fixture
def engine() -> StubEngine:
    return StubEngine()


@pytest.fixture
def config_store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def make_rule():
    return build_rule


@pytest.fixture
def make_notifier():
    return build_slack_notifier
