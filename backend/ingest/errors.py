"""
Error taxonomy for the source fetchers.

Neither error ever reaches the board: FetchFailure turns into an empty
source slot for the cycle, MalformedRecord into a skipped entry.
"""
from __future__ import annotations

from shared.models.enums import SourceName


class SourceError(Exception):
    """Base for errors attributable to one upstream source."""

    def __init__(self, source: SourceName | str, message: str) -> None:
        self.source = SourceName(source)
        self.message = message
        super().__init__(f"[{self.source.value}] {message}")


class FetchFailure(SourceError):
    """Network, HTTP, timeout or JSON-parse failure while fetching one source."""

    def __init__(
        self,
        source: SourceName | str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(source, message)


class MalformedRecord(SourceError):
    """A raw entry that cannot be read as a record of its source at all."""
