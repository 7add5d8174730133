"""
Reconcile each rule's recorded state with what Alertmanager reports.

Alertmanager decides whether an alert is firing; the operator's mute
decides whether it should be silenced. Each tick the observed state is
derived from the live alert list and compared to the recorded one:

    recorded   observed   action
    inactive   *          nothing
    X          X          nothing
    muted      active     remove silence, record active
    alerting   muted      remove silence, keep alerting
    muted      alerting   add silence, keep muted
    other mismatch        record observed
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable

import structlog

from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.core.errors import AlertSyncError
from alertsync.db.repositories import RuleStore
from alertsync.domain.models import AlertRule, AlertState, EngineAlert

logger = structlog.get_logger()


class SilenceAction(StrEnum):
    none = "none"
    add = "add"
    remove = "remove"


@dataclass(frozen=True, slots=True)
class SyncDecision:
    silence: SilenceAction = SilenceAction.none
    persist: AlertState | None = None


NO_OP = SyncDecision()


def observed_state(alert_id: str, alerts: Iterable[EngineAlert]) -> AlertState:
    for alert in alerts:
        if alert.alert_id == alert_id:
            return AlertState.muted if alert.suppressed else AlertState.alerting
    return AlertState.active


def decide(recorded: AlertState, observed: AlertState) -> SyncDecision:
    if recorded == AlertState.inactive or recorded == observed:
        return NO_OP
    if recorded == AlertState.muted and observed == AlertState.active:
        return SyncDecision(silence=SilenceAction.remove, persist=AlertState.active)
    if recorded == AlertState.alerting and observed == AlertState.muted:
        return SyncDecision(silence=SilenceAction.remove)
    if recorded == AlertState.muted and observed == AlertState.alerting:
        return SyncDecision(silence=SilenceAction.add)
    return SyncDecision(persist=observed)


@dataclass(slots=True)
class SyncReport:
    rules: int = 0
    persisted: int = 0
    silences_added: int = 0
    silences_removed: int = 0
    failures: int = 0
    skipped: bool = False


class StateSyncer:
    def __init__(self, store: RuleStore, client: AlertmanagerClient, cluster_name: str) -> None:
        self._store = store
        self._client = client
        self._cluster_name = cluster_name

    async def sync_once(self) -> SyncReport:
        report = SyncReport()

        try:
            alerts = await self._client.list_alerts()
        except AlertSyncError as exc:
            logger.error("alert_list_failed", cluster=self._cluster_name, error=exc.message)
            report.skipped = True
            return report

        try:
            rules = [
                *await self._store.list_cluster_rules(self._cluster_name),
                *await self._store.list_project_rules(self._cluster_name),
            ]
        except AlertSyncError as exc:
            logger.error("rule_list_failed", cluster=self._cluster_name, error=exc.message)
            report.skipped = True
            return report

        for rule in rules:
            report.rules += 1
            await self.reconcile(rule, alerts, report)

        if report.persisted or report.silences_added or report.silences_removed:
            logger.info(
                "state_sync_completed",
                rules=report.rules,
                persisted=report.persisted,
                silences_added=report.silences_added,
                silences_removed=report.silences_removed,
                failures=report.failures,
            )
        return report

    async def reconcile(
        self,
        rule: AlertRule,
        alerts: Iterable[EngineAlert],
        report: SyncReport | None = None,
    ) -> SyncDecision:
        report = report if report is not None else SyncReport()
        alert_id = rule.alert_id
        if rule.state == AlertState.inactive:
            return NO_OP

        observed = observed_state(alert_id, alerts)
        decision = decide(rule.state, observed)
        if decision == NO_OP:
            return decision

        log = logger.bind(alert_id=alert_id, recorded=rule.state.value, observed=observed.value)

        try:
            if decision.silence == SilenceAction.add:
                await self._client.add_silence(alert_id)
                report.silences_added += 1
            elif decision.silence == SilenceAction.remove:
                await self._client.remove_silence(alert_id)
                report.silences_removed += 1
        except AlertSyncError as exc:
            report.failures += 1
            log.error("silence_update_failed", action=decision.silence.value, error=exc.message)

        if decision.persist is not None:
            try:
                updated = await self._store.update_rule_state(rule, decision.persist)
            except AlertSyncError as exc:
                report.failures += 1
                log.error("state_update_failed", error=exc.message)
            else:
                if updated:
                    report.persisted += 1
                    log.info("state_updated", state=decision.persist.value)
                else:
                    report.failures += 1
                    log.warning("state_update_conflict", state=decision.persist.value)

        return decision
