"""
Compile alert rules and notifiers into an Alertmanager routing document.

Every non-inactive rule gets exactly one receiver and one route, both keyed
by the rule's alert identity. Recipient bindings that reference an unknown
notifier are skipped so one bad reference never blocks the other rules.
"""

from __future__ import annotations

from typing import Iterable, Mapping

import structlog

from alertsync.alertmanager.config import (
    AlertmanagerConfig,
    EmailReceiver,
    PagerDutyReceiver,
    Receiver,
    Route,
    SlackReceiver,
    WebhookReceiver,
    default_config,
    format_duration,
)
from alertsync.domain.models import (
    ALERT_ID_LABEL,
    AlertRule,
    AlertState,
    EmailSettings,
    NotifierChannel,
    PagerDutySettings,
    RecipientBinding,
    SlackSettings,
    WebhookSettings,
)

logger = structlog.get_logger()

SLACK_TEXT = "{{ (index .Alerts 0).Labels.text }}\n"
SLACK_TITLE = "{{ (index .Alerts 0).Labels.title }}\n"
SLACK_COLOR = (
    '{{ if eq (index .Alerts 0).Labels.severity "critical" }}danger'
    '{{ else if eq (index .Alerts 0).Labels.severity "warning" }}warning'
    "{{ else }}good{{ end }}"
)
EMAIL_SUBJECT = "Alert from alertsync: {{ (index .Alerts 0).Labels.title }}"
PAGERDUTY_DESCRIPTION = "{{ (index .Alerts 0).Labels.title }}"


def compile_config(
    rules: Iterable[AlertRule],
    notifiers: Iterable[NotifierChannel],
) -> AlertmanagerConfig:
    """Build the routing document for the given rules and notifiers."""
    config = default_config()
    by_id = {notifier.id: notifier for notifier in notifiers}
    seen: set[str] = set()

    for rule in sorted(rules, key=lambda r: r.alert_id):
        if rule.state == AlertState.inactive:
            continue
        if rule.alert_id in seen:
            logger.warning("duplicate_alert_rule", alert_id=rule.alert_id)
            continue
        seen.add(rule.alert_id)

        config.receivers.append(build_receiver(rule, by_id))
        config.route.routes.append(build_route(rule))

    return config


def build_route(rule: AlertRule) -> Route:
    return Route(
        receiver=rule.alert_id,
        match={ALERT_ID_LABEL: rule.alert_id},
        group_wait=format_duration(rule.initial_wait_seconds),
        repeat_interval=format_duration(rule.repeat_interval_seconds),
    )


def build_receiver(rule: AlertRule, notifiers: Mapping[str, NotifierChannel]) -> Receiver:
    receiver = Receiver(name=rule.alert_id)
    for binding in rule.recipients:
        notifier = notifiers.get(binding.notifier_id)
        if notifier is None:
            logger.warning(
                "notifier_not_found",
                alert_id=rule.alert_id,
                notifier_id=binding.notifier_id,
            )
            continue
        _add_channel(receiver, notifier, binding)
    return receiver


def _add_channel(receiver: Receiver, notifier: NotifierChannel, binding: RecipientBinding) -> None:
    settings = notifier.settings
    override = binding.recipient

    if isinstance(settings, SlackSettings):
        receiver.slack_configs.append(
            SlackReceiver(
                api_url=settings.url,
                channel=override or settings.default_recipient,
                text=SLACK_TEXT,
                title=SLACK_TITLE,
                color=SLACK_COLOR,
            )
        )
    elif isinstance(settings, EmailSettings):
        receiver.email_configs.append(
            EmailReceiver(
                to=override or settings.default_recipient,
                smarthost=f"{settings.host}:{settings.port}",
                auth_username=settings.username,
                auth_password=settings.password,
                require_tls=settings.tls,
                from_=settings.sender,
                headers={"Subject": EMAIL_SUBJECT},
            )
        )
    elif isinstance(settings, PagerDutySettings):
        receiver.pagerduty_configs.append(
            PagerDutyReceiver(
                service_key=override or settings.service_key,
                description=PAGERDUTY_DESCRIPTION,
            )
        )
    elif isinstance(settings, WebhookSettings):
        receiver.webhook_configs.append(WebhookReceiver(url=override or settings.url))
