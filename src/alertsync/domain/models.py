from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Mapping, Union

from pydantic import BaseModel, Field, model_validator

ALERT_ID_LABEL = "alert_id"


class AlertState(StrEnum):
    """Lifecycle state of an alert rule."""

    active = "active"
    alerting = "alerting"
    muted = "muted"
    inactive = "inactive"


class AlertScope(StrEnum):
    cluster = "cluster"
    project = "project"


class Severity(StrEnum):
    critical = "critical"
    warning = "warning"
    info = "info"


def alert_identity(namespace: str, name: str) -> str:
    """Identity shared by the rule's route, receiver, silences and fired alerts."""
    return f"{namespace}-{name}"


def notifier_identity(cluster_name: str, name: str) -> str:
    return f"{cluster_name}:{name}"


class _SelectorTarget(BaseModel):
    """Target addressed by explicit id or by label selector, never both."""

    target_id: str | None = None
    selector: Mapping[str, str] | None = None

    @model_validator(mode="after")
    def _one_target(self) -> "_SelectorTarget":
        if bool(self.target_id) == bool(self.selector):
            raise ValueError("exactly one of target_id or selector must be set")
        return self


class NodeNotReadyCondition(_SelectorTarget):
    kind: Literal["node_not_ready"] = "node_not_ready"


class NodeResourceCondition(_SelectorTarget):
    kind: Literal["node_resource"] = "node_resource"
    resource: Literal["cpu", "memory"]
    threshold_percent: int = Field(ge=1, le=100)


class WorkloadUnavailableCondition(_SelectorTarget):
    kind: Literal["workload_unavailable"] = "workload_unavailable"
    workload_kind: Literal["deployment", "daemonset", "statefulset"] = "deployment"
    unavailable_percentage: int = Field(ge=1, le=100)


class PodNotRunningCondition(BaseModel):
    kind: Literal["pod_not_running"] = "pod_not_running"
    pod_id: str


class PodNotScheduledCondition(BaseModel):
    kind: Literal["pod_not_scheduled"] = "pod_not_scheduled"
    pod_id: str


class PodRestartsCondition(BaseModel):
    kind: Literal["pod_restarts"] = "pod_restarts"
    pod_id: str
    restart_threshold: int = Field(default=3, ge=1)
    restart_interval_seconds: int = Field(default=300, ge=1)


class SystemComponentCondition(BaseModel):
    kind: Literal["system_component"] = "system_component"
    component: str


class WarningEventCondition(BaseModel):
    kind: Literal["warning_event"] = "warning_event"
    resource_kind: str
    event_type: str = "Warning"


Condition = Annotated[
    Union[
        NodeNotReadyCondition,
        NodeResourceCondition,
        WorkloadUnavailableCondition,
        PodNotRunningCondition,
        PodNotScheduledCondition,
        PodRestartsCondition,
        SystemComponentCondition,
        WarningEventCondition,
    ],
    Field(discriminator="kind"),
]


class RecipientBinding(BaseModel):
    """Reference from a rule to a notifier, with an optional destination override."""

    notifier_id: str
    recipient: str = ""


class AlertRule(BaseModel):
    namespace: str
    name: str
    scope: AlertScope = AlertScope.cluster
    cluster_name: str
    project_name: str | None = None
    severity: Severity = Severity.warning
    display_name: str = ""
    description: str = ""
    initial_wait_seconds: int = Field(default=180, ge=0)
    repeat_interval_seconds: int = Field(default=3600, ge=0)
    condition: Condition
    recipients: list[RecipientBinding] = Field(default_factory=list)
    state: AlertState = AlertState.active
    resource_version: int = 0

    @property
    def alert_id(self) -> str:
        return alert_identity(self.namespace, self.name)

    @property
    def key(self) -> str:
        return f"{self.namespace}:{self.name}"


class SlackSettings(BaseModel):
    kind: Literal["slack"] = "slack"
    url: str
    default_recipient: str = ""


class EmailSettings(BaseModel):
    kind: Literal["email"] = "email"
    host: str
    port: int = 587
    username: str = ""
    password: str = ""
    tls: bool = True
    default_recipient: str = ""
    sender: str = ""


class PagerDutySettings(BaseModel):
    kind: Literal["pagerduty"] = "pagerduty"
    service_key: str


class WebhookSettings(BaseModel):
    kind: Literal["webhook"] = "webhook"
    url: str


NotifierSettings = Annotated[
    Union[SlackSettings, EmailSettings, PagerDutySettings, WebhookSettings],
    Field(discriminator="kind"),
]


class NotifierChannel(BaseModel):
    cluster_name: str
    name: str
    display_name: str = ""
    settings: NotifierSettings

    @property
    def id(self) -> str:
        return notifier_identity(self.cluster_name, self.name)


class EngineAlert(BaseModel):
    """One live alert as reported by Alertmanager."""

    labels: dict[str, str] = Field(default_factory=dict)
    state: str = "active"

    @property
    def alert_id(self) -> str | None:
        return self.labels.get(ALERT_ID_LABEL)

    @property
    def suppressed(self) -> bool:
        return self.state == "suppressed"


class SilenceMatcher(BaseModel):
    name: str
    value: str
    is_regex: bool = False


class Silence(BaseModel):
    id: str
    matchers: list[SilenceMatcher] = Field(default_factory=list)
    state: str = "active"

    def targets_only(self, alert_id: str) -> bool:
        """True when this silence matches exactly the given alert identity."""
        return (
            len(self.matchers) == 1
            and self.matchers[0].name == ALERT_ID_LABEL
            and self.matchers[0].value == alert_id
            and not self.matchers[0].is_regex
        )
