"""
Rule and notifier lifecycle plus the operator actions on a rule.

Every change that affects routing re-runs the config sync. Restart-rate
rules get a restart history entry when created and lose it when removed.
"""

from __future__ import annotations

from enum import StrEnum

import structlog

from alertsync.clients.alertmanager import AlertmanagerClient
from alertsync.core.errors import AlertSyncError
from alertsync.db.repositories import MutableRuleStore
from alertsync.domain.models import AlertRule, AlertState, NotifierChannel, PodRestartsCondition
from alertsync.sync.config_syncer import ConfigSyncer
from alertsync.watchers.restart_tracker import RestartTracker

logger = structlog.get_logger()


class RuleAction(StrEnum):
    mute = "mute"
    unmute = "unmute"
    activate = "activate"
    deactivate = "deactivate"


class AlertLifecycle:
    def __init__(
        self,
        store: MutableRuleStore,
        client: AlertmanagerClient,
        config_syncer: ConfigSyncer,
        tracker: RestartTracker,
    ) -> None:
        self._store = store
        self._client = client
        self._config_syncer = config_syncer
        self._tracker = tracker

    async def _resync(self, reason: str) -> None:
        try:
            await self._config_syncer.sync()
        except AlertSyncError as exc:
            # the next rule or notifier change retries the sync
            logger.error("config_sync_failed", reason=reason, error=exc.message)

    async def create_rule(self, rule: AlertRule) -> AlertRule:
        saved = await self._store.save_rule(rule.model_copy(update={"state": AlertState.active}))
        if isinstance(saved.condition, PodRestartsCondition):
            self._tracker.track(saved.key)
        logger.info("alert_rule_created", alert_id=saved.alert_id)
        await self._resync("rule_created")
        return saved

    async def update_rule(self, rule: AlertRule) -> AlertRule:
        current = await self._store.get_rule(rule.namespace, rule.name)
        saved = await self._store.save_rule(rule.model_copy(update={"state": current.state}))
        if not isinstance(saved.condition, PodRestartsCondition):
            self._tracker.forget(saved.key)
        elif not isinstance(current.condition, PodRestartsCondition):
            self._tracker.track(saved.key)
        logger.info("alert_rule_updated", alert_id=saved.alert_id)
        await self._resync("rule_updated")
        return saved

    async def remove_rule(self, namespace: str, name: str) -> AlertRule:
        removed = await self._store.delete_rule(namespace, name)
        self._tracker.forget(removed.key)
        logger.info("alert_rule_removed", alert_id=removed.alert_id)
        await self._resync("rule_removed")
        return removed

    async def apply_action(self, namespace: str, name: str, action: RuleAction) -> AlertRule:
        rule = await self._store.get_rule(namespace, name)

        if action == RuleAction.mute:
            await self._client.add_silence(rule.alert_id)
            state = AlertState.muted
        elif action == RuleAction.unmute:
            await self._client.remove_silence(rule.alert_id)
            state = AlertState.alerting
        elif action == RuleAction.deactivate:
            state = AlertState.inactive
        else:
            state = AlertState.active

        saved = await self._store.save_rule(rule.model_copy(update={"state": state}))
        logger.info("alert_rule_action", alert_id=rule.alert_id, action=action.value, state=state.value)

        if action in (RuleAction.activate, RuleAction.deactivate):
            await self._resync(f"rule_{action.value}d")
        return saved

    async def save_notifier(self, notifier: NotifierChannel) -> NotifierChannel:
        saved = await self._store.save_notifier(notifier)
        logger.info("notifier_saved", notifier_id=saved.id)
        await self._resync("notifier_saved")
        return saved

    async def remove_notifier(self, cluster_name: str, name: str) -> NotifierChannel:
        removed = await self._store.delete_notifier(cluster_name, name)
        logger.info("notifier_removed", notifier_id=removed.id)
        await self._resync("notifier_removed")
        return removed
