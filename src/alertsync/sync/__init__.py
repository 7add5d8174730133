"""Config publication and state reconciliation against Alertmanager."""

from alertsync.sync.config_syncer import ConfigSyncer
from alertsync.sync.loop import run_periodically
from alertsync.sync.publisher import ConfigPublisher
from alertsync.sync.state_syncer import (
    SilenceAction,
    StateSyncer,
    SyncDecision,
    SyncReport,
    decide,
    observed_state,
)
from alertsync.sync.tasks import BackgroundTasks

__all__ = [
    "BackgroundTasks",
    "ConfigPublisher",
    "ConfigSyncer",
    "SilenceAction",
    "StateSyncer",
    "SyncDecision",
    "SyncReport",
    "decide",
    "observed_state",
    "run_periodically",
]
