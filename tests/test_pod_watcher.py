from typing import Any

import pytest

from alertsync.core.errors import PodSourceError
from alertsync.domain.models import AlertScope, AlertState
from alertsync.watchers.pod import (
    ContainerState,
    KubernetesPodSource,
    PodStatus,
    PodWatcher,
    split_pod_id,
)
from alertsync.watchers.restart_tracker import RestartTracker


class StubPodSource:
    def __init__(self) -> None:
        self.pods: dict[tuple[str, str], PodStatus] = {}
        self.reads: list[tuple[str, str]] = []
        self.unreadable: set[str] = set()

    async def get_pod(self, namespace: str, name: str) -> PodStatus | None:
        self.reads.append((namespace, name))
        if name in self.unreadable:
            raise PodSourceError(f"Failed to read pod {namespace}:{name}")
        return self.pods.get((namespace, name))


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def pod_rule(make_rule, kind: str, state: AlertState = AlertState.active, **condition: Any):
    return make_rule(
        "p1",
        kind,
        scope=AlertScope.project,
        state=state,
        condition={"kind": kind, "pod_id": "default:web-0", **condition},
    )


@pytest.fixture
def source() -> StubPodSource:
    return StubPodSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def watcher(rule_store, source, engine, clock) -> PodWatcher:
    return PodWatcher(rule_store, source, engine, RestartTracker(), "c1", clock=clock)


def test_split_pod_id():
    assert split_pod_id("default:web-0") == ("default", "web-0")
    assert split_pod_id("web-0") is None
    assert split_pod_id(":web-0") is None


@pytest.mark.asyncio
async def test_unscheduled_pod_fires(rule_store, source, engine, watcher, make_rule):
    await rule_store.save_rule(pod_rule(make_rule, "pod_not_scheduled"))
    source.pods[("default", "web-0")] = PodStatus(
        "default", "web-0", scheduled=False, schedule_message="0/3 nodes available"
    )

    fired = await watcher.watch_once()

    assert fired == 1
    assert engine.sent[0]["alert_id"] == "p1-pod_not_scheduled"
    assert engine.sent[0]["title"] == "The Pod web-0 is not scheduled"
    assert "0/3 nodes available" in engine.sent[0]["text"]


@pytest.mark.asyncio
async def test_not_running_container_fires(rule_store, source, engine, watcher, make_rule):
    await rule_store.save_rule(pod_rule(make_rule, "pod_not_running"))
    source.pods[("default", "web-0")] = PodStatus(
        "default",
        "web-0",
        containers=(
            ContainerState("app", running=True),
            ContainerState("sidecar", running=False, message="CrashLoopBackOff"),
        ),
    )

    assert await watcher.watch_once() == 1
    assert engine.sent[0]["title"] == "The Pod web-0 is not running"
    assert "*Container Name*: sidecar" in engine.sent[0]["text"]


@pytest.mark.asyncio
async def test_healthy_pod_does_not_fire(rule_store, source, engine, watcher, make_rule):
    await rule_store.save_rule(pod_rule(make_rule, "pod_not_running"))
    source.pods[("default", "web-0")] = PodStatus(
        "default", "web-0", containers=(ContainerState("app"),)
    )

    assert await watcher.watch_once() == 0
    assert engine.sent == []


@pytest.mark.asyncio
async def test_inactive_and_non_pod_rules_are_skipped(rule_store, source, watcher, make_rule):
    await rule_store.save_rule(pod_rule(make_rule, "pod_not_running", state=AlertState.inactive))
    await rule_store.save_rule(
        make_rule(
            "p1",
            "component",
            scope=AlertScope.project,
            condition={"kind": "system_component", "component": "etcd"},
        )
    )

    assert await watcher.watch_once() == 0
    assert source.reads == []


@pytest.mark.asyncio
async def test_missing_pod_does_not_fire(rule_store, engine, watcher, make_rule):
    await rule_store.save_rule(pod_rule(make_rule, "pod_not_scheduled"))

    assert await watcher.watch_once() == 0
    assert engine.sent == []


@pytest.mark.asyncio
async def test_restart_rate_fires_once_threshold_reached_in_window(
    rule_store, source, engine, watcher, clock, make_rule
):
    await rule_store.save_rule(
        pod_rule(make_rule, "pod_restarts", restart_threshold=3, restart_interval_seconds=300)
    )

    def crash(count: int) -> None:
        source.pods[("default", "web-0")] = PodStatus(
            "default",
            "web-0",
            containers=(ContainerState("app", restart_count=count, running=False),),
        )

    crash(0)
    assert await watcher.watch_once() == 0

    clock.now = 100
    crash(2)
    assert await watcher.watch_once() == 0

    clock.now = 200
    crash(3)
    assert await watcher.watch_once() == 1
    assert engine.sent[-1]["title"] == "The Pod web-0 restarts 3 times in 5 mins"


@pytest.mark.asyncio
async def test_restarts_outside_window_do_not_fire(
    rule_store, source, engine, watcher, clock, make_rule
):
    await rule_store.save_rule(
        pod_rule(make_rule, "pod_restarts", restart_threshold=3, restart_interval_seconds=300)
    )

    for now, count in [(0, 0), (200, 2), (400, 3), (600, 4)]:
        clock.now = now
        source.pods[("default", "web-0")] = PodStatus(
            "default",
            "web-0",
            containers=(ContainerState("app", restart_count=count, running=False),),
        )
        await watcher.watch_once()

    assert engine.sent == []


@pytest.mark.asyncio
async def test_unreadable_pod_does_not_block_other_rules(
    rule_store, source, engine, watcher, make_rule
):
    for name, pod in [("a-bad", "bad-0"), ("b-web", "web-0")]:
        await rule_store.save_rule(
            make_rule(
                "p1",
                name,
                scope=AlertScope.project,
                condition={"kind": "pod_not_scheduled", "pod_id": f"default:{pod}"},
            )
        )
    source.unreadable.add("bad-0")
    source.pods[("default", "web-0")] = PodStatus("default", "web-0", scheduled=False)

    assert await watcher.watch_once() == 1
    assert sorted(source.reads) == [("default", "bad-0"), ("default", "web-0")]
    assert [sent["alert_id"] for sent in engine.sent] == ["p1-b-web"]


@pytest.mark.asyncio
async def test_kubernetes_api_errors_become_pod_source_errors():
    exceptions = pytest.importorskip("kubernetes.client.exceptions")

    class CoreApi:
        def __init__(self, status: int) -> None:
            self.status = status

        def read_namespaced_pod(self, name, namespace, **kwargs):
            raise exceptions.ApiException(status=self.status, reason="boom")

    assert await KubernetesPodSource(_core_api=CoreApi(404)).get_pod("default", "web-0") is None

    with pytest.raises(PodSourceError):
        await KubernetesPodSource(_core_api=CoreApi(500)).get_pod("default", "web-0")
