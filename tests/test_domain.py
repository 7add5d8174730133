"""Tests for domain models and identities."""

import pytest
from pydantic import TypeAdapter, ValidationError

from alertsync.domain.models import (
    Condition,
    EngineAlert,
    NodeResourceCondition,
    NotifierChannel,
    PodRestartsCondition,
    Silence,
    SilenceMatcher,
    WebhookSettings,
    alert_identity,
    notifier_identity,
)
from conftest import build_rule

conditions = TypeAdapter(Condition)


class TestIdentity:
    def test_alert_identity(self):
        assert alert_identity("p1", "r1") == "p1-r1"
        assert build_rule("p1", "r1").alert_id == "p1-r1"

    def test_rule_key_is_distinct_from_identity(self):
        assert build_rule("p1", "r1").key == "p1:r1"

    def test_notifier_identity(self):
        notifier = NotifierChannel(
            cluster_name="c1", name="hook", settings=WebhookSettings(url="http://x")
        )
        assert notifier.id == notifier_identity("c1", "hook") == "c1:hook"


class TestConditions:
    def test_discriminated_by_kind(self):
        condition = conditions.validate_python(
            {"kind": "node_resource", "selector": {"role": "worker"}, "resource": "cpu", "threshold_percent": 80}
        )

        assert isinstance(condition, NodeResourceCondition)
        assert condition.selector == {"role": "worker"}

    def test_pod_restart_defaults(self):
        condition = conditions.validate_python({"kind": "pod_restarts", "pod_id": "ns:pod"})

        assert isinstance(condition, PodRestartsCondition)
        assert condition.restart_threshold == 3
        assert condition.restart_interval_seconds == 300

    def test_target_and_selector_are_exclusive(self):
        with pytest.raises(ValidationError):
            conditions.validate_python(
                {"kind": "node_not_ready", "target_id": "n1", "selector": {"a": "b"}}
            )
        with pytest.raises(ValidationError):
            conditions.validate_python({"kind": "node_not_ready"})

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            conditions.validate_python({"kind": "cosmic_rays"})


class TestEngineModels:
    def test_alert_without_identity_label(self):
        alert = EngineAlert(labels={"alertname": "Watchdog"})

        assert alert.alert_id is None
        assert not alert.suppressed

    def test_silence_targets_only(self):
        exact = Silence(id="1", matchers=[SilenceMatcher(name="alert_id", value="p1-r1")])
        regex = Silence(
            id="2", matchers=[SilenceMatcher(name="alert_id", value="p1-r1", is_regex=True)]
        )
        other = Silence(id="3", matchers=[SilenceMatcher(name="alert_id", value="p1-r2")])

        assert exact.targets_only("p1-r1")
        assert not regex.targets_only("p1-r1")
        assert not other.targets_only("p1-r1")
