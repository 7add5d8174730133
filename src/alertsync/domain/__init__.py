from alertsync.domain.models import (
    ALERT_ID_LABEL,
    AlertRule,
    AlertScope,
    AlertState,
    Condition,
    EmailSettings,
    EngineAlert,
    NotifierChannel,
    PagerDutySettings,
    PodRestartsCondition,
    RecipientBinding,
    Severity,
    Silence,
    SlackSettings,
    WebhookSettings,
    alert_identity,
    notifier_identity,
)

__all__ = [
    "ALERT_ID_LABEL",
    "AlertRule",
    "AlertScope",
    "AlertState",
    "Condition",
    "EmailSettings",
    "EngineAlert",
    "NotifierChannel",
    "PagerDutySettings",
    "PodRestartsCondition",
    "RecipientBinding",
    "Severity",
    "Silence",
    "SlackSettings",
    "WebhookSettings",
    "alert_identity",
    "notifier_identity",
]
