"""
Football-Data.org (football-data.org) source connector.
Uses the v4 `/matches` endpoint with the X-Auth-Token header.
Free tier: 10 requests/min, which a 60s refresh cycle stays well under.
"""
from __future__ import annotations

from typing import Any

from shared.config import Settings, get_settings
from shared.models.enums import SourceName
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from ingest.errors import FetchFailure
from ingest.providers.base import BaseSource

logger = get_logger(__name__)

MATCHES_PATH = "/matches"


class FootballDataSource(BaseSource):
    """Football-Data.org v4 API; response envelope is `{matches: [...]}`."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: SourceHTTPClient | None = None,
    ) -> None:
        settings = settings or get_settings()
        headers: dict[str, str] = {}
        if settings.football_data_api_key:
            headers["X-Auth-Token"] = settings.football_data_api_key
        http_client = http_client or SourceHTTPClient(
            source_name=SourceName.FOOTBALL_DATA.value,
            base_url=settings.football_data_base_url,
            headers=headers,
            timeout_s=settings.source_timeout_s,
        )
        super().__init__(
            name=SourceName.FOOTBALL_DATA,
            http_client=http_client,
            timeout_s=settings.source_timeout_s,
            configured=settings.football_data_enabled and settings.football_data_configured,
        )

    async def _fetch_raw(self) -> list[Any]:
        data = await self._http.get_json(MATCHES_PATH)
        matches = data.get("matches")
        if matches is None:
            # Error bodies come back as {"message": ..., "errorCode": ...}
            if data.get("message"):
                raise FetchFailure(self._name, str(data["message"]))
            return []
        if not isinstance(matches, list):
            raise FetchFailure(self._name, "`matches` is not a list")
        return matches
