from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from alertsync.api.deps import get_controller, get_lifecycle, http_error
from alertsync.controller import AlertController
from alertsync.core.errors import AlertSyncError
from alertsync.domain.models import (
    AlertRule,
    AlertScope,
    Condition,
    RecipientBinding,
    Severity,
)
from alertsync.lifecycle import AlertLifecycle, RuleAction

router = APIRouter()
logger = structlog.get_logger()


class AlertRuleBody(BaseModel):
    """User-editable part of a rule; cluster and state are owned by the server."""

    scope: AlertScope = AlertScope.cluster
    project_name: str | None = None
    severity: Severity = Severity.warning
    display_name: str = ""
    description: str = ""
    initial_wait_seconds: int = Field(default=180, ge=0)
    repeat_interval_seconds: int = Field(default=3600, ge=0)
    condition: Condition
    recipients: list[RecipientBinding] = Field(default_factory=list)


class AlertRuleCreate(AlertRuleBody):
    namespace: str
    name: str


def _to_rule(namespace: str, name: str, body: AlertRuleBody, cluster_name: str) -> AlertRule:
    return AlertRule(
        namespace=namespace,
        name=name,
        cluster_name=cluster_name,
        **body.model_dump(exclude={"namespace", "name"}),
    )


@router.get("/alerts", response_model=list[AlertRule])
async def list_alerts(
    scope: AlertScope | None = None,
    controller: AlertController = Depends(get_controller),  # noqa: B008
) -> list[AlertRule]:
    cluster = controller.settings.cluster_name
    try:
        rules: list[AlertRule] = []
        if scope in (None, AlertScope.cluster):
            rules.extend(await controller.store.list_cluster_rules(cluster))
        if scope in (None, AlertScope.project):
            rules.extend(await controller.store.list_project_rules(cluster))
    except AlertSyncError as exc:
        raise http_error(exc) from exc
    return rules


@router.post("/alerts", response_model=AlertRule, status_code=status.HTTP_201_CREATED)
async def create_alert(
    payload: AlertRuleCreate,
    controller: AlertController = Depends(get_controller),  # noqa: B008
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> AlertRule:
    rule = _to_rule(payload.namespace, payload.name, payload, controller.settings.cluster_name)
    try:
        return await lifecycle.create_rule(rule)
    except AlertSyncError as exc:
        raise http_error(exc) from exc


@router.get("/alerts/{namespace}/{name}", response_model=AlertRule)
async def get_alert(
    namespace: str,
    name: str,
    controller: AlertController = Depends(get_controller),  # noqa: B008
) -> AlertRule:
    try:
        return await controller.store.get_rule(namespace, name)
    except AlertSyncError as exc:
        raise http_error(exc) from exc


@router.put("/alerts/{namespace}/{name}", response_model=AlertRule)
async def update_alert(
    namespace: str,
    name: str,
    payload: AlertRuleBody,
    controller: AlertController = Depends(get_controller),  # noqa: B008
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> AlertRule:
    rule = _to_rule(namespace, name, payload, controller.settings.cluster_name)
    try:
        return await lifecycle.update_rule(rule)
    except AlertSyncError as exc:
        raise http_error(exc) from exc


@router.delete("/alerts/{namespace}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_alert(
    namespace: str,
    name: str,
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> Response:
    try:
        await lifecycle.remove_rule(namespace, name)
    except AlertSyncError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/alerts/{namespace}/{name}/{action}", response_model=AlertRule)
async def apply_alert_action(
    namespace: str,
    name: str,
    action: str,
    lifecycle: AlertLifecycle = Depends(get_lifecycle),  # noqa: B008
) -> AlertRule:
    try:
        rule_action = RuleAction(action)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown action {action!r}; expected one of {[a.value for a in RuleAction]}",
        ) from exc

    try:
        return await lifecycle.apply_action(namespace, name, rule_action)
    except AlertSyncError as exc:
        logger.warning("alert_action_failed", namespace=namespace, name=name, action=action, error=exc.message)
        raise http_error(exc) from exc
