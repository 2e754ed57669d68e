"""
API-Football (api-sports.io v3) source connector.

Three `/fixtures` queries that differ only by their filter parameter:
live fixtures, finished (FT) and not started (NS). Authenticated with the
x-apisports-key header. Response envelope is `{response: [...], errors: ...}`.
"""
from __future__ import annotations

import asyncio
from typing import Any

from shared.config import Settings, get_settings
from shared.models.enums import SourceName
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from ingest.errors import FetchFailure
from ingest.providers.base import BaseSource

logger = get_logger(__name__)

FIXTURES_PATH = "/fixtures"

# Merge order: live, then finished, then upcoming.
FIXTURE_QUERIES: dict[str, dict[str, str]] = {
    "live": {"live": "all"},
    "finished": {"status": "FT"},
    "upcoming": {"status": "NS"},
}


class ApiFootballSource(BaseSource):
    """API-Football v3 fixtures."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: SourceHTTPClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        headers = {
            "x-apisports-key": settings.api_football_api_key,
            "x-rapidapi-host": settings.api_football_host,
        }
        http_client = http_client or SourceHTTPClient(
            source_name=SourceName.API_FOOTBALL.value,
            base_url=settings.api_football_base_url,
            headers=headers,
            timeout_s=settings.source_timeout_s,
        )
        super().__init__(
            name=SourceName.API_FOOTBALL,
            http_client=http_client,
            timeout_s=settings.source_timeout_s,
            configured=settings.api_football_enabled and settings.api_football_configured,
        )

    async def _fetch_bucket(self, bucket: str, params: dict[str, str]) -> list[Any]:
        data = await self._http.get_json(FIXTURES_PATH, params=params)
        errors = data.get("errors")
        if errors:
            # api-sports reports auth/quota problems with a 200 and an errors member
            logger.warning("api_football_errors", bucket=bucket, errors=errors)
        fixtures = data.get("response") or []
        if not isinstance(fixtures, list):
            raise FetchFailure(self._name, f"`response` is not a list for {bucket}")
        return fixtures

    async def _fetch_raw(self) -> list[Any]:
        buckets = list(FIXTURE_QUERIES.items())
        results = await asyncio.gather(
            *(self._fetch_bucket(bucket, params) for bucket, params in buckets),
            return_exceptions=True,
        )

        fixtures: list[Any] = []
        failures: list[str] = []
        for (bucket, _), result in zip(buckets, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failures.append(f"{bucket}: {result}")
                logger.warning("api_football_bucket_failed", bucket=bucket, error=str(result))
                continue
            fixtures.extend(result)

        if len(failures) == len(buckets):
            raise FetchFailure(self._name, "; ".join(failures))
        return fixtures
