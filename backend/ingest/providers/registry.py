"""
Source registry.
Owns the three source connectors and runs one fetch cycle across all of them.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from shared.config import Settings, get_settings
from shared.models.domain import CanonicalMatch, SourceSnapshot
from shared.models.enums import SourceName
from shared.utils.logging import get_logger

from ingest.providers.api_football import ApiFootballSource
from ingest.providers.base import BaseSource, SourceResult
from ingest.providers.custom_store import CustomStoreSource
from ingest.providers.football_data import FootballDataSource

logger = get_logger(__name__)


class SourceRegistry:
    """
    Holds one connector per source and assembles cycle snapshots.

    Fetches run concurrently; the snapshot is built only after every source
    has settled, each writing its own named slot.
    """

    def __init__(self, sources: list[BaseSource], settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._sources: dict[SourceName, BaseSource] = {s.name: s for s in sources}

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SourceRegistry":
        settings = settings or get_settings()
        return cls(
            [
                CustomStoreSource(settings),
                ApiFootballSource(settings),
                FootballDataSource(settings),
            ],
            settings,
        )

    @property
    def sources(self) -> list[BaseSource]:
        return [self._sources[name] for name in SourceName if name in self._sources]

    def get(self, name: SourceName) -> Optional[BaseSource]:
        return self._sources.get(name)

    async def start(self) -> None:
        for source in self.sources:
            await source.start()
            if not source.configured:
                logger.warning("source_disabled", source=source.name.value)

    async def close(self) -> None:
        for source in self.sources:
            await source.close()

    async def fetch_all(
        self,
        seq: int = 0,
        previous: Optional[SourceSnapshot] = None,
    ) -> SourceSnapshot:
        """
        Run one fetch cycle across all sources.

        Args:
            seq: Cycle sequence number stamped on the snapshot.
            previous: Last published snapshot; its slots are reused for failed
                sources when keep_last_good_on_failure is set.

        Returns:
            A complete SourceSnapshot. Never raises for source failures.
        """
        sources = self.sources
        results: list[SourceResult] = await asyncio.gather(*(s.fetch() for s in sources))

        slots: dict[SourceName, list[CanonicalMatch]] = {name: [] for name in SourceName}
        failures: dict[SourceName, str] = {}
        for result in results:
            if result.success:
                slots[result.source] = result.matches
                continue
            failures[result.source] = result.error or "unknown error"
            if self._settings.keep_last_good_on_failure and previous is not None:
                slots[result.source] = previous.slot(result.source)
                logger.info(
                    "source_slot_reused",
                    source=result.source.value,
                    matches=len(slots[result.source]),
                    from_seq=previous.seq,
                )

        snapshot = SourceSnapshot(
            custom_store=slots[SourceName.CUSTOM_STORE],
            api_football=slots[SourceName.API_FOOTBALL],
            football_data=slots[SourceName.FOOTBALL_DATA],
            seq=seq,
            fetched_at=datetime.now(timezone.utc),
            failures=failures,
        )
        logger.info(
            "fetch_cycle_settled",
            seq=seq,
            total=snapshot.total,
            failed=[s.value for s in failures],
        )
        return snapshot
