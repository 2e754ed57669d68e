"""Domain enumerations for the Zonera score board."""
from __future__ import annotations

from enum import Enum


class MatchStatus(str, Enum):
    LIVE = "live"
    UPCOMING = "upcoming"
    FINISHED = "finished"


class StatusFilter(str, Enum):
    """Filter tabs offered by the board; ALL disables status filtering."""
    ALL = "all"
    LIVE = "live"
    UPCOMING = "upcoming"
    FINISHED = "finished"


class SourceName(str, Enum):
    # Merge order follows declaration order.
    CUSTOM_STORE = "custom_store"
    API_FOOTBALL = "api_football"
    FOOTBALL_DATA = "football_data"
