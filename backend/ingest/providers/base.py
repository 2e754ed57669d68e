"""
Abstract base class for all match-data sources.
Defines the contract that every source connector must implement.
"""
from __future__ import annotations

import abc
import asyncio
import time
from typing import Any, Iterable, Optional

from shared.models.domain import CanonicalMatch
from shared.models.enums import SourceName
from shared.models.records import SourceRecord, parse_record
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import MALFORMED_RECORDS, SOURCE_FAILURES

from ingest.errors import FetchFailure, MalformedRecord
from ingest.normalization.normalizer import normalize_many

logger = get_logger(__name__)


class SourceResult:
    """Container for one source's contribution to a fetch cycle."""

    def __init__(
        self,
        source: SourceName,
        success: bool,
        latency_ms: float,
        matches: Optional[list[CanonicalMatch]] = None,
        skipped: int = 0,
        error: Optional[str] = None,
    ) -> None:
        self.source = source
        self.success = success
        self.latency_ms = latency_ms
        self.matches = matches or []
        self.skipped = skipped
        self.error = error

    def __repr__(self) -> str:
        return (
            f"SourceResult(source={self.source.value}, success={self.success}, "
            f"matches={len(self.matches)}, error={self.error!r})"
        )


class BaseSource(abc.ABC):
    """
    Abstract base class for match-data sources.

    Subclasses implement `_fetch_raw`; the base class handles the HTTP
    lifecycle, the per-source timeout, record parsing, normalization and
    the failure policy (log, count, contribute nothing).
    """

    def __init__(
        self,
        name: SourceName,
        http_client: SourceHTTPClient,
        timeout_s: float = 10.0,
        configured: bool = True,
    ) -> None:
        self._name = name
        self._http = http_client
        self._timeout_s = timeout_s
        self._configured = configured

    @property
    def name(self) -> SourceName:
        return self._name

    @property
    def configured(self) -> bool:
        return self._configured

    async def start(self) -> None:
        """Initialize the source HTTP client."""
        await self._http.start()

    async def close(self) -> None:
        """Shutdown the source HTTP client."""
        await self._http.close()

    def parse(self, raw_entries: Iterable[Any]) -> tuple[list[SourceRecord], int]:
        """Parse raw entries, skipping malformed ones. Returns (records, skipped)."""
        records: list[SourceRecord] = []
        skipped = 0
        for raw in raw_entries:
            try:
                records.append(parse_record(self._name, raw))
            except MalformedRecord as exc:
                skipped += 1
                MALFORMED_RECORDS.labels(source=self._name.value).inc()
                logger.warning("source_record_malformed", source=self._name.value, error=exc.message)
        return records, skipped

    async def fetch(self) -> SourceResult:
        """
        Fetch, parse and normalize this source's current matches.

        Never raises: any failure yields an unsuccessful result with no matches.
        """
        if not self._configured:
            logger.debug("source_not_configured", source=self._name.value)
            return SourceResult(source=self._name, success=True, latency_ms=0.0)

        start = time.perf_counter()
        try:
            raw_entries = await asyncio.wait_for(self._fetch_raw(), timeout=self._timeout_s)
            records, skipped = self.parse(raw_entries)
            matches = normalize_many(records)
        except asyncio.TimeoutError:
            return self._failed(start, "timeout", f"no response within {self._timeout_s:.0f}s")
        except FetchFailure as exc:
            return self._failed(start, "fetch", exc.message)
        except Exception as exc:
            logger.error(
                "source_fetch_unexpected_error",
                source=self._name.value,
                error=str(exc),
                exc_info=True,
            )
            return self._failed(start, "unexpected", str(exc))

        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "source_fetched",
            source=self._name.value,
            matches=len(matches),
            skipped=skipped,
            latency_ms=round(latency_ms, 2),
        )
        return SourceResult(
            source=self._name,
            success=True,
            latency_ms=latency_ms,
            matches=matches,
            skipped=skipped,
        )

    def _failed(self, start: float, reason: str, error: str) -> SourceResult:
        latency_ms = (time.perf_counter() - start) * 1000
        SOURCE_FAILURES.labels(source=self._name.value, reason=reason).inc()
        logger.warning(
            "source_fetch_failed",
            source=self._name.value,
            reason=reason,
            error=error,
            latency_ms=round(latency_ms, 2),
        )
        return SourceResult(source=self._name, success=False, latency_ms=latency_ms, error=error)

    # ── Abstract methods (each source implements these) ─────────────────
    @abc.abstractmethod
    async def _fetch_raw(self) -> list[Any]:
        """
        Source-specific retrieval.

        Returns the raw entries in display order. Raises FetchFailure when
        the source as a whole could not be read.
        """
        ...
