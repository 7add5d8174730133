"""
Alertmanager configuration generation.

Builds the routing document (receivers, routes, global settings) that
Alertmanager loads, one receiver and one route per alert rule.
"""

from alertsync.alertmanager.compiler import build_receiver, build_route, compile_config
from alertsync.alertmanager.config import (
    AlertmanagerConfig,
    EmailReceiver,
    GlobalConfig,
    PagerDutyReceiver,
    Receiver,
    Route,
    SlackReceiver,
    WebhookReceiver,
    default_config,
    format_duration,
)

__all__ = [
    "AlertmanagerConfig",
    "build_receiver",
    "build_route",
    "compile_config",
    "default_config",
    "EmailReceiver",
    "format_duration",
    "GlobalConfig",
    "PagerDutyReceiver",
    "Receiver",
    "Route",
    "SlackReceiver",
    "WebhookReceiver",
]
