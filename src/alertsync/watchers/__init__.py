"""Condition watchers that fire alerts into Alertmanager."""

from alertsync.watchers.pod import (
    ContainerState,
    KubernetesPodSource,
    PodSource,
    PodStatus,
    PodWatcher,
)
from alertsync.watchers.restart_tracker import (
    InMemoryRestartHistoryStore,
    RestartHistoryStore,
    RestartObservation,
    RestartSample,
    RestartTracker,
)

__all__ = [
    "ContainerState",
    "InMemoryRestartHistoryStore",
    "KubernetesPodSource",
    "PodSource",
    "PodStatus",
    "PodWatcher",
    "RestartHistoryStore",
    "RestartObservation",
    "RestartSample",
    "RestartTracker",
]
