from __future__ import annotations

from typing import Protocol

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from alertsync.core.errors import RuleNotFoundError, RuleStoreError
from alertsync.db import models as db_models
from alertsync.domain.models import (
    AlertRule,
    AlertScope,
    AlertState,
    NotifierChannel,
    RecipientBinding,
)

logger = structlog.get_logger()


class RuleStore(Protocol):
    """Read access to rules and notifiers plus the state write-back."""

    async def list_cluster_rules(self, cluster_name: str) -> list[AlertRule]: ...

    async def list_project_rules(self, cluster_name: str) -> list[AlertRule]: ...

    async def list_notifiers(self, cluster_name: str) -> list[NotifierChannel]: ...

    async def update_rule_state(self, rule: AlertRule, state: AlertState) -> bool: ...


class MutableRuleStore(RuleStore, Protocol):
    """Rule store with the writes needed by user actions."""

    async def get_rule(self, namespace: str, name: str) -> AlertRule: ...

    async def save_rule(self, rule: AlertRule) -> AlertRule: ...

    async def delete_rule(self, namespace: str, name: str) -> AlertRule: ...

    async def save_notifier(self, notifier: NotifierChannel) -> NotifierChannel: ...

    async def delete_notifier(self, cluster_name: str, name: str) -> NotifierChannel: ...


def _to_recipients(record: db_models.AlertRuleRecord) -> list[RecipientBinding]:
    bindings = []
    for raw in record.recipients or []:
        try:
            bindings.append(RecipientBinding.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "invalid_recipient_binding",
                namespace=record.namespace,
                name=record.name,
                error=str(exc),
            )
    return bindings


def _to_rule(record: db_models.AlertRuleRecord) -> AlertRule:
    """Raises ValueError (ValidationError included) for a malformed row."""
    return AlertRule(
        namespace=record.namespace,
        name=record.name,
        scope=AlertScope(record.scope),
        cluster_name=record.cluster_name,
        project_name=record.project_name,
        severity=record.severity,
        display_name=record.display_name,
        description=record.description,
        initial_wait_seconds=record.initial_wait_seconds,
        repeat_interval_seconds=record.repeat_interval_seconds,
        condition=record.condition,
        recipients=_to_recipients(record),
        state=AlertState(record.state),
        resource_version=record.resource_version,
    )


def _to_notifier(record: db_models.NotifierRecord) -> NotifierChannel:
    return NotifierChannel(
        cluster_name=record.cluster_name,
        name=record.name,
        display_name=record.display_name,
        settings=record.settings,
    )


def _valid_rules(records) -> list[AlertRule]:
    rules = []
    for record in records:
        try:
            rules.append(_to_rule(record))
        except ValueError as exc:
            logger.warning(
                "invalid_alert_rule",
                namespace=record.namespace,
                name=record.name,
                error=str(exc),
            )
    return rules


def _valid_notifiers(records) -> list[NotifierChannel]:
    notifiers = []
    for record in records:
        try:
            notifiers.append(_to_notifier(record))
        except ValidationError as exc:
            logger.warning(
                "invalid_notifier",
                cluster_name=record.cluster_name,
                name=record.name,
                error=str(exc),
            )
    return notifiers


def _stored_rule(record: db_models.AlertRuleRecord) -> AlertRule:
    try:
        return _to_rule(record)
    except ValueError as exc:
        raise RuleStoreError(
            f"Stored alert rule {record.namespace}/{record.name} is invalid: {exc}",
            details={"namespace": record.namespace, "name": record.name},
        ) from exc


def _stored_notifier(record: db_models.NotifierRecord) -> NotifierChannel:
    try:
        return _to_notifier(record)
    except ValidationError as exc:
        raise RuleStoreError(
            f"Stored notifier {record.cluster_name}:{record.name} is invalid: {exc}",
            details={"cluster_name": record.cluster_name, "name": record.name},
        ) from exc


class SqlRuleStore:
    """Rule store backed by SQLAlchemy; one session per operation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _list_rules(self, scope: AlertScope, cluster_name: str) -> list[AlertRule]:
        stmt = (
            select(db_models.AlertRuleRecord)
            .where(db_models.AlertRuleRecord.scope == scope.value)
            .where(db_models.AlertRuleRecord.cluster_name == cluster_name)
            .order_by(db_models.AlertRuleRecord.namespace, db_models.AlertRuleRecord.name)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return _valid_rules(result.scalars())
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to list {scope.value} rules: {exc}") from exc

    async def list_cluster_rules(self, cluster_name: str) -> list[AlertRule]:
        return await self._list_rules(AlertScope.cluster, cluster_name)

    async def list_project_rules(self, cluster_name: str) -> list[AlertRule]:
        return await self._list_rules(AlertScope.project, cluster_name)

    async def list_notifiers(self, cluster_name: str) -> list[NotifierChannel]:
        stmt = (
            select(db_models.NotifierRecord)
            .where(db_models.NotifierRecord.cluster_name == cluster_name)
            .order_by(db_models.NotifierRecord.name)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return _valid_notifiers(result.scalars())
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to list notifiers: {exc}") from exc

    async def get_rule(self, namespace: str, name: str) -> AlertRule:
        stmt = select(db_models.AlertRuleRecord).where(
            db_models.AlertRuleRecord.namespace == namespace,
            db_models.AlertRuleRecord.name == name,
        )
        try:
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to read rule {namespace}/{name}: {exc}") from exc
        if record is None:
            raise RuleNotFoundError(
                f"Alert rule {namespace}/{name} not found",
                details={"namespace": namespace, "name": name},
            )
        return _stored_rule(record)

    async def save_rule(self, rule: AlertRule) -> AlertRule:
        """Insert or replace a rule definition, bumping its resource version."""
        stmt = select(db_models.AlertRuleRecord).where(
            db_models.AlertRuleRecord.namespace == rule.namespace,
            db_models.AlertRuleRecord.name == rule.name,
        )
        try:
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
                if record is None:
                    record = db_models.AlertRuleRecord(
                        namespace=rule.namespace, name=rule.name, resource_version=0
                    )
                    session.add(record)
                record.scope = rule.scope.value
                record.cluster_name = rule.cluster_name
                record.project_name = rule.project_name
                record.severity = rule.severity.value
                record.display_name = rule.display_name
                record.description = rule.description
                record.initial_wait_seconds = rule.initial_wait_seconds
                record.repeat_interval_seconds = rule.repeat_interval_seconds
                record.condition = rule.condition.model_dump(mode="json")
                record.recipients = [r.model_dump(mode="json") for r in rule.recipients]
                record.state = rule.state.value
                record.resource_version = (record.resource_version or 0) + 1
                await session.commit()
                return _to_rule(record)
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to save rule {rule.key}: {exc}") from exc

    async def delete_rule(self, namespace: str, name: str) -> AlertRule:
        rule = await self.get_rule(namespace, name)
        stmt = delete(db_models.AlertRuleRecord).where(
            db_models.AlertRuleRecord.namespace == namespace,
            db_models.AlertRuleRecord.name == name,
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to delete rule {rule.key}: {exc}") from exc
        return rule

    async def update_rule_state(self, rule: AlertRule, state: AlertState) -> bool:
        """
        Conditionally set the rule's state.

        The write only applies when the stored resource version still equals
        the one the caller read; returns False when another writer got there
        first.
        """
        stmt = (
            update(db_models.AlertRuleRecord)
            .where(
                db_models.AlertRuleRecord.namespace == rule.namespace,
                db_models.AlertRuleRecord.name == rule.name,
                db_models.AlertRuleRecord.resource_version == rule.resource_version,
            )
            .values(state=state.value, resource_version=rule.resource_version + 1)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to update state of {rule.key}: {exc}") from exc
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def get_notifier(self, cluster_name: str, name: str) -> NotifierChannel:
        stmt = select(db_models.NotifierRecord).where(
            db_models.NotifierRecord.cluster_name == cluster_name,
            db_models.NotifierRecord.name == name,
        )
        try:
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to read notifier {cluster_name}:{name}: {exc}") from exc
        if record is None:
            raise RuleNotFoundError(
                f"Notifier {cluster_name}:{name} not found",
                details={"cluster_name": cluster_name, "name": name},
            )
        return _stored_notifier(record)

    async def save_notifier(self, notifier: NotifierChannel) -> NotifierChannel:
        stmt = select(db_models.NotifierRecord).where(
            db_models.NotifierRecord.cluster_name == notifier.cluster_name,
            db_models.NotifierRecord.name == notifier.name,
        )
        try:
            async with self._session_factory() as session:
                record = (await session.execute(stmt)).scalar_one_or_none()
                if record is None:
                    record = db_models.NotifierRecord(
                        cluster_name=notifier.cluster_name, name=notifier.name
                    )
                    session.add(record)
                record.display_name = notifier.display_name
                record.settings = notifier.settings.model_dump(mode="json")
                await session.commit()
        except IntegrityError as exc:
            raise RuleStoreError(f"Conflicting notifier {notifier.id}: {exc}") from exc
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to save notifier {notifier.id}: {exc}") from exc
        return notifier

    async def delete_notifier(self, cluster_name: str, name: str) -> NotifierChannel:
        notifier = await self.get_notifier(cluster_name, name)
        stmt = delete(db_models.NotifierRecord).where(
            db_models.NotifierRecord.cluster_name == cluster_name,
            db_models.NotifierRecord.name == name,
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise RuleStoreError(f"Failed to delete notifier {notifier.id}: {exc}") from exc
        return notifier
