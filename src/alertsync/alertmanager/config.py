"""
Alertmanager configuration document.

Dataclasses mirroring the parts of alertmanager.yml that alertsync writes:
global settings, receivers with per-channel configs, and the routing tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

PAGERDUTY_EVENTS_URL = "https://events.pagerduty.com/generic/2010-04-15/create_event.json"
DEFAULT_RECEIVER = "alertsync-default"

_DURATION_UNITS = (
    ("w", 7 * 24 * 3600),
    ("d", 24 * 3600),
    ("h", 3600),
    ("m", 60),
    ("s", 1),
)


def format_duration(seconds: int) -> str:
    """Render seconds in Alertmanager duration notation, e.g. 5400 -> "1h30m"."""
    if seconds <= 0:
        return "0s"
    parts = []
    remaining = int(seconds)
    for unit, size in _DURATION_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{unit}")
    return "".join(parts)


@dataclass
class SlackReceiver:
    api_url: str
    channel: str = ""
    title: str = ""
    text: str = ""
    color: str = ""
    send_resolved: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"api_url": self.api_url, "send_resolved": self.send_resolved}
        for key in ("channel", "title", "text", "color"):
            value = getattr(self, key)
            if value:
                result[key] = value
        return result


@dataclass
class EmailReceiver:
    to: str
    smarthost: str
    auth_username: str = ""
    auth_password: str = ""
    require_tls: bool = True
    from_: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    send_resolved: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "to": self.to,
            "smarthost": self.smarthost,
            "require_tls": self.require_tls,
            "send_resolved": self.send_resolved,
        }
        if self.auth_username:
            result["auth_username"] = self.auth_username
        if self.auth_password:
            result["auth_password"] = self.auth_password
        if self.from_:
            result["from"] = self.from_
        if self.headers:
            result["headers"] = dict(self.headers)
        return result


@dataclass
class PagerDutyReceiver:
    service_key: str
    description: str = ""
    send_resolved: bool = True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "service_key": self.service_key,
            "send_resolved": self.send_resolved,
        }
        if self.description:
            result["description"] = self.description
        return result


@dataclass
class WebhookReceiver:
    url: str
    send_resolved: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "send_resolved": self.send_resolved}


@dataclass
class Receiver:
    name: str
    slack_configs: list[SlackReceiver] = field(default_factory=list)
    email_configs: list[EmailReceiver] = field(default_factory=list)
    pagerduty_configs: list[PagerDutyReceiver] = field(default_factory=list)
    webhook_configs: list[WebhookReceiver] = field(default_factory=list)

    @property
    def config_count(self) -> int:
        return (
            len(self.slack_configs)
            + len(self.email_configs)
            + len(self.pagerduty_configs)
            + len(self.webhook_configs)
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.slack_configs:
            result["slack_configs"] = [c.to_dict() for c in self.slack_configs]
        if self.email_configs:
            result["email_configs"] = [c.to_dict() for c in self.email_configs]
        if self.pagerduty_configs:
            result["pagerduty_configs"] = [c.to_dict() for c in self.pagerduty_configs]
        if self.webhook_configs:
            result["webhook_configs"] = [c.to_dict() for c in self.webhook_configs]
        return result


@dataclass
class Route:
    receiver: str
    match: dict[str, str] = field(default_factory=dict)
    group_by: list[str] = field(default_factory=list)
    group_wait: str | None = None
    group_interval: str | None = None
    repeat_interval: str | None = None
    routes: list[Route] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"receiver": self.receiver}
        if self.match:
            result["match"] = dict(self.match)
        if self.group_by:
            result["group_by"] = list(self.group_by)
        if self.group_wait is not None:
            result["group_wait"] = self.group_wait
        if self.group_interval is not None:
            result["group_interval"] = self.group_interval
        if self.repeat_interval is not None:
            result["repeat_interval"] = self.repeat_interval
        if self.routes:
            result["routes"] = [r.to_dict() for r in self.routes]
        return result


@dataclass
class GlobalConfig:
    resolve_timeout: str = "5m"
    pagerduty_url: str = PAGERDUTY_EVENTS_URL
    smtp_require_tls: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "resolve_timeout": self.resolve_timeout,
            "pagerduty_url": self.pagerduty_url,
            "smtp_require_tls": self.smtp_require_tls,
        }


@dataclass
class AlertmanagerConfig:
    """Complete Alertmanager configuration."""

    route: Route
    receivers: list[Receiver] = field(default_factory=list)
    global_config: GlobalConfig = field(default_factory=GlobalConfig)

    def receiver(self, name: str) -> Receiver | None:
        return next((r for r in self.receivers if r.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "global": self.global_config.to_dict(),
            "route": self.route.to_dict(),
            "receivers": [r.to_dict() for r in self.receivers],
        }

    def to_yaml(self) -> str:
        """Serialize with sorted keys so equal documents render byte-identical."""
        return yaml.safe_dump(self.to_dict(), sort_keys=True, default_flow_style=False)


def default_config() -> AlertmanagerConfig:
    """Engine-level defaults, independent of any rule."""
    return AlertmanagerConfig(
        route=Route(
            receiver=DEFAULT_RECEIVER,
            group_wait="1m",
            group_interval="10s",
            repeat_interval="1h",
        ),
        receivers=[Receiver(name=DEFAULT_RECEIVER)],
    )
