"""
Bounded-window restart tracking for pod restart-rate rules.

Each rule keeps an ordered list of (restart count, observed at) samples.
On every observation the samples that fell out of the rule's window are
dropped; the oldest survivor is the baseline the current count is compared
with, so a rule alerts on restarts per window rather than a lifetime total.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

DEFAULT_HISTORY_LIMIT = 30


@dataclass(frozen=True, slots=True)
class RestartSample:
    count: int
    observed_at: float


@dataclass(frozen=True, slots=True)
class RestartObservation:
    current: int
    baseline: int
    ready: bool

    @property
    def increase(self) -> int:
        return self.current - self.baseline

    def exceeds(self, threshold: int) -> bool:
        return self.ready and self.increase >= threshold


class RestartHistoryStore(Protocol):
    def create(self, key: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def get(self, key: str) -> list[RestartSample] | None: ...

    def put(self, key: str, samples: list[RestartSample]) -> None: ...


class InMemoryRestartHistoryStore:
    """Process-local history, owned by a single pod watcher."""

    def __init__(self) -> None:
        self._history: dict[str, list[RestartSample]] = {}

    def create(self, key: str) -> None:
        self._history[key] = []

    def delete(self, key: str) -> None:
        self._history.pop(key, None)

    def get(self, key: str) -> list[RestartSample] | None:
        samples = self._history.get(key)
        return list(samples) if samples is not None else None

    def put(self, key: str, samples: list[RestartSample]) -> None:
        self._history[key] = list(samples)

    def __contains__(self, key: object) -> bool:
        return key in self._history

    def __len__(self) -> int:
        return len(self._history)


class RestartTracker:
    def __init__(
        self,
        store: RestartHistoryStore | None = None,
        *,
        max_samples: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._store = store if store is not None else InMemoryRestartHistoryStore()
        self._max_samples = max(1, max_samples)

    def track(self, key: str) -> None:
        """Start a fresh history for a newly created rule."""
        self._store.create(key)

    def forget(self, key: str) -> None:
        """Drop the history of a removed rule."""
        self._store.delete(key)

    def samples(self, key: str) -> list[RestartSample]:
        return self._store.get(key) or []

    def observe(self, key: str, count: int, now: float, window_seconds: float) -> RestartObservation:
        samples = self._store.get(key) or []
        expired = 0
        while expired < len(samples) and now - samples[expired].observed_at >= window_seconds:
            expired += 1
        samples = samples[expired:]

        if not samples:
            self._store.put(key, [RestartSample(count, now)])
            return RestartObservation(current=count, baseline=count, ready=False)

        baseline = samples[0].count
        samples.append(RestartSample(count, now))
        if len(samples) > self._max_samples:
            samples = samples[-self._max_samples :]
        self._store.put(key, samples)
        return RestartObservation(current=count, baseline=baseline, ready=True)
