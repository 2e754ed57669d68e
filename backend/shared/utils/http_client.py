"""
Async HTTP client wrapper for upstream source requests.
Includes timeout management, JSON decoding and metrics collection.

One attempt per request: a failed source simply waits for the next refresh
cycle, so there is no retry loop here.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from ingest.errors import FetchFailure
from shared.config import get_settings
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_LATENCY, SOURCE_REQUESTS

logger = get_logger(__name__)


class SourceHTTPClient:
    """
    Async HTTP client tailored for the match-data sources.
    Handles timeouts, maps every failure to FetchFailure, and records metrics per request.
    """

    def __init__(
        self,
        source_name: str,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._source = source_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or settings.source_timeout_s
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def started(self) -> bool:
        return self._client is not None

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Perform a GET request and decode a JSON object body.

        Args:
            path: API path relative to base_url.
            params: Query parameters.
            extra_headers: Request-specific headers.

        Returns:
            The decoded JSON object.

        Raises:
            FetchFailure: On transport errors, timeouts, non-2xx responses,
                invalid JSON, or a body that is not a JSON object.
        """
        if not self._client:
            raise RuntimeError("SourceHTTPClient not started. Call start() first.")

        start_time = time.perf_counter()
        status = "error"
        try:
            resp = await self._client.get(path, params=params, headers=extra_headers)
            status = str(resp.status_code)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as exc:
            status = "timeout"
            logger.warning("source_timeout", source=self._source, path=path)
            raise FetchFailure(self._source, f"timeout on {path}") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "source_http_error",
                source=self._source,
                path=path,
                status=exc.response.status_code,
            )
            raise FetchFailure(
                self._source,
                f"HTTP {exc.response.status_code} on {path}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("source_transport_error", source=self._source, path=path, error=str(exc))
            raise FetchFailure(self._source, f"transport error on {path}: {exc}") from exc
        except ValueError as exc:
            status = "bad_json"
            logger.warning("source_bad_json", source=self._source, path=path, error=str(exc))
            raise FetchFailure(self._source, f"invalid JSON from {path}") from exc
        finally:
            elapsed_s = time.perf_counter() - start_time
            SOURCE_REQUESTS.labels(source=self._source, status=status).inc()
            SOURCE_LATENCY.labels(source=self._source).observe(elapsed_s)

        if not isinstance(payload, dict):
            raise FetchFailure(self._source, f"expected a JSON object from {path}")

        logger.debug(
            "source_request_success",
            source=self._source,
            path=path,
            status=status,
            latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return payload
