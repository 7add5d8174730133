from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from circuitbreaker import CircuitBreakerError

from alertsync.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from alertsync.core.errors import EngineError, EngineProtocolError
from alertsync.domain.models import ALERT_ID_LABEL, EngineAlert, Silence, SilenceMatcher

logger = structlog.get_logger()

SILENCE_DURATION = timedelta(days=365 * 100)


class AlertmanagerClient(BaseHTTPClient):
    """Alertmanager HTTP API client with retry logic and circuit breaker."""

    def __init__(
        self,
        base_url: str,
        *,
        created_by: str = "alertsync",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            circuit_failure_threshold=circuit_failure_threshold,
            circuit_recovery_timeout=circuit_recovery_timeout,
            transport=transport,
        )
        self._created_by = created_by

    async def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            return await self._request(method, path, **kwargs)
        except (RetryableHTTPError, PermanentHTTPError, CircuitBreakerError) as exc:
            raise EngineError(
                f"Alertmanager request failed: {exc}",
                details={"method": method, "path": path},
            ) from exc

    @staticmethod
    def _data(payload: Any, path: str) -> Any:
        if not isinstance(payload, dict) or payload.get("status") != "success":
            raise EngineProtocolError(
                "Alertmanager returned a non-success response",
                details={"path": path},
            )
        return payload.get("data")

    @staticmethod
    def _mapping(value: Any, what: str, path: str) -> dict[str, Any]:
        """Treat a missing field as empty; anything but an object is a protocol error."""
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise EngineProtocolError(f"Malformed {what}", details={"path": path})
        return value

    async def reload(self) -> None:
        """Ask Alertmanager to reload its stored configuration."""
        await self._call("POST", "/-/reload")

    async def list_alerts(self) -> list[EngineAlert]:
        path = "/api/v1/alerts"
        data = self._data(await self._call("GET", path), path)
        if not isinstance(data, list):
            raise EngineProtocolError("Alert list is not an array", details={"path": path})

        alerts = []
        for item in data:
            if not isinstance(item, dict):
                raise EngineProtocolError("Malformed alert entry", details={"path": path})
            labels = self._mapping(item.get("labels"), "alert labels", path)
            status = self._mapping(item.get("status"), "alert status", path)
            alerts.append(
                EngineAlert(
                    labels={str(k): str(v) for k, v in labels.items()},
                    state=str(status.get("state", "active")),
                )
            )
        return alerts

    async def send_alert(self, alert_id: str, text: str, title: str, severity: str) -> None:
        """Fire (or refresh) the alert for one rule."""
        payload = [
            {
                "labels": {
                    ALERT_ID_LABEL: alert_id,
                    "text": text,
                    "title": title,
                    "severity": severity,
                }
            }
        ]
        await self._call("POST", "/api/alerts", json=payload)
        logger.info("alert_sent", alert_id=alert_id, severity=severity)

    async def add_silence(self, alert_id: str, *, comment: str = "silence") -> str | None:
        now = datetime.now(timezone.utc)
        body = {
            "matchers": [{"name": ALERT_ID_LABEL, "value": alert_id, "isRegex": False}],
            "startsAt": now.isoformat(),
            "endsAt": (now + SILENCE_DURATION).isoformat(),
            "createdBy": self._created_by,
            "comment": comment,
        }
        path = "/api/v1/silences"
        data = self._data(await self._call("POST", path, json=body), path) or {}
        silence_id = data.get("silenceId") if isinstance(data, dict) else None
        logger.info("silence_added", alert_id=alert_id, silence_id=silence_id)
        return silence_id

    async def list_silences(self, alert_id: str) -> list[Silence]:
        path = "/api/v1/silences"
        params = {"filter": f'{{{ALERT_ID_LABEL}="{alert_id}"}}'}
        data = self._data(await self._call("GET", path, params=params), path) or []
        if not isinstance(data, list):
            raise EngineProtocolError("Silence list is not an array", details={"path": path})

        silences = []
        for item in data:
            if not isinstance(item, dict):
                raise EngineProtocolError("Malformed silence entry", details={"path": path})
            raw_matchers = item.get("matchers") or []
            if not isinstance(raw_matchers, list):
                raise EngineProtocolError("Silence matchers are not an array", details={"path": path})
            matchers = []
            for m in raw_matchers:
                m = self._mapping(m, "silence matcher", path)
                matchers.append(
                    SilenceMatcher(
                        name=str(m.get("name", "")),
                        value=str(m.get("value", "")),
                        is_regex=bool(m.get("isRegex", False)),
                    )
                )
            status = self._mapping(item.get("status"), "silence status", path)
            silences.append(
                Silence(
                    id=str(item.get("id", "")),
                    matchers=matchers,
                    state=str(status.get("state", "")),
                )
            )
        return silences

    async def remove_silence(self, alert_id: str) -> int:
        """Expire the active silences that match exactly this alert identity."""
        removed = 0
        for silence in await self.list_silences(alert_id):
            if silence.state != "active" or not silence.targets_only(alert_id):
                continue
            await self._call("DELETE", f"/api/v1/silence/{silence.id}")
            removed += 1
        logger.info("silence_removed", alert_id=alert_id, count=removed)
        return removed
