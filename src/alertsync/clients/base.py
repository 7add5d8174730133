from __future__ import annotations

from typing import Any

import httpx
import structlog
from circuitbreaker import CircuitBreaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


class RetryableHTTPError(Exception):
    """HTTP errors that should be retried."""


class PermanentHTTPError(Exception):
    """HTTP errors that should not be retried."""


def is_retryable_status(status_code: int) -> bool:
    """Determine if HTTP status code is retryable."""
    return status_code in (408, 429, 500, 502, 503, 504)


class BaseHTTPClient:
    """Base HTTP client with retry logic and circuit breaker.

    One ``httpx.AsyncClient`` is kept per instance; call ``aclose`` when done.
    The circuit breaker is per instance so separate engines do not trip
    each other.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        circuit_failure_threshold: int = 5,
        circuit_recovery_timeout: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._breaker = CircuitBreaker(
            failure_threshold=circuit_failure_threshold,
            recovery_timeout=circuit_recovery_timeout,
            expected_exception=RetryableHTTPError,
            name=f"{type(self).__name__}:{self._base_url}:{id(self)}",
        )
        self._guarded_request = self._breaker(self._request_with_retry)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        """Override to provide custom headers."""
        return {"Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute HTTP request with retry and circuit breaker."""
        return await self._guarded_request(
            method, path, params=params, json=json, headers=headers
        )

    async def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> Any:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RetryableHTTPError),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._backoff_factor, max=30),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(method, path, **kwargs)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        req_headers = self._headers()
        if headers:
            req_headers.update(headers)

        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                headers=req_headers,
            )

            if is_retryable_status(response.status_code):
                logger.warning(
                    "http_retryable_error",
                    status=response.status_code,
                    method=method,
                    url=url,
                )
                raise RetryableHTTPError(f"HTTP {response.status_code}: {response.text}")

            response.raise_for_status()
            return self._decode(response)

        except httpx.HTTPStatusError as exc:
            logger.error(
                "http_permanent_error",
                status=exc.response.status_code,
                method=method,
                url=url,
                error=str(exc),
            )
            raise PermanentHTTPError(str(exc)) from exc
        except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as exc:
            logger.warning("http_network_error", method=method, url=url, error=str(exc))
            raise RetryableHTTPError(str(exc)) from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise PermanentHTTPError(f"Invalid JSON from {response.request.url}") from exc
