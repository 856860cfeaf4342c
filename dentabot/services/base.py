"""Shared HTTP plumbing for the backend clients.

Every backend (knowledge base, intent recognizer, scheduler) is reached
through a thin ``httpx.Client`` wrapper.  Failures are never retried and
never swallowed: transport errors and non-2xx responses are raised as
:class:`ServiceError` for the caller to deal with.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from dentabot.services.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class ServiceError(Exception):
    """Raised when a backend call fails (transport error or non-2xx status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        service: str = "backend",
    ):
        self.status_code = status_code
        self.service = service
        super().__init__(message)


def shape_error(service: str, data: Any, exc: Exception) -> ServiceError:
    """Build the error raised when a 2xx body does not have the expected shape."""
    logger.error("%s returned an unexpected payload: %s", service, data)
    return ServiceError(f"Unexpected {service} response: {exc!r}", service=service)


class JSONServiceClient:
    """Base class for the REST backends: one ``httpx.Client`` per instance,
    one call per request, latency and outcome reported to metrics.
    """

    service_name = "backend"

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=timeout,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        operation: str | None = None,
    ) -> httpx.Response:
        """Execute a single HTTP request and raise on any failure."""
        operation = operation or f"{method} {path}"
        t0 = time.perf_counter()
        try:
            response = self._client.request(
                method,
                path,
                params=params,
                json=json_body,
            )
        except httpx.HTTPError as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                self.service_name, operation,
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.error(
                "%s %s failed without a response: %s",
                self.service_name, operation, exc,
            )
            raise ServiceError(
                f"{self.service_name} request failed: {exc}",
                service=self.service_name,
            ) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if response.status_code >= 400:
            kind = "Server" if response.status_code >= 500 else "Client"
            metrics.record_failure(
                self.service_name, operation,
                error_type=f"{response.status_code // 100}xx", latency_ms=elapsed,
            )
            logger.error(
                "%s %s returned %d: %s",
                self.service_name, operation, response.status_code, response.text,
            )
            raise ServiceError(
                f"{kind} error {response.status_code}: {response.text}",
                status_code=response.status_code,
                service=self.service_name,
            )

        metrics.record_success(self.service_name, operation, latency_ms=elapsed)
        return response

    def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(
                f"{self.service_name} returned a non-JSON body: {response.text}",
                status_code=response.status_code,
                service=self.service_name,
            ) from exc

    def close(self) -> None:
        self._client.close()
