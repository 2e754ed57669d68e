"""
Pydantic v2 domain models shared across the Zonera services.
These are the canonical internal/wire representations every source is normalized into.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.models.enums import MatchStatus, SourceName, StatusFilter

DEFAULT_TEAM_NAME = "TBD"
DEFAULT_LEAGUE_NAME = "Other"
NO_MATCHES_MESSAGE = "No matches"


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Reference entities ──────────────────────────────────────────────────
class LeagueRef(DomainModel):
    id: str = ""
    name: str = DEFAULT_LEAGUE_NAME
    country: str = ""
    logo: Optional[str] = None

    @model_validator(mode="after")
    def default_id_to_name(self) -> "LeagueRef":
        """Sources without a stable league identifier are keyed by name."""
        if not self.id:
            self.id = self.name
        return self

    @property
    def group_key(self) -> str:
        return self.id or self.name


# ── Canonical match ─────────────────────────────────────────────────────
class CanonicalMatch(DomainModel):
    """The unified record shape all sources are normalized into."""
    home_team: str = DEFAULT_TEAM_NAME
    away_team: str = DEFAULT_TEAM_NAME
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: MatchStatus = MatchStatus.UPCOMING
    kickoff_time: Optional[datetime] = None
    league: LeagueRef = Field(default_factory=LeagueRef)
    source: SourceName
    source_match_id: Optional[str] = None
    minute: Optional[int] = None

    @field_validator("kickoff_time")
    @classmethod
    def kickoff_is_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def scores_required_after_kickoff(self) -> "CanonicalMatch":
        if self.status != MatchStatus.UPCOMING and (
            self.home_score is None or self.away_score is None
        ):
            raise ValueError(f"{self.status.value} match requires both scores")
        return self

    @property
    def has_scores(self) -> bool:
        return self.home_score is not None and self.away_score is not None


# ── Board output ────────────────────────────────────────────────────────
class LeagueGroup(DomainModel):
    """Matches bucketed by league for display. Built per view, never persisted."""
    id: str
    name: str
    country: str = ""
    logo: Optional[str] = None
    matches: list[CanonicalMatch] = Field(default_factory=list)


class SourceSnapshot(DomainModel):
    """
    Result of one fetch cycle: one named slot per source.

    A snapshot is published only after every source has settled, and is
    never mutated afterwards.
    """
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    custom_store: list[CanonicalMatch] = Field(default_factory=list)
    api_football: list[CanonicalMatch] = Field(default_factory=list)
    football_data: list[CanonicalMatch] = Field(default_factory=list)
    seq: int = 0
    fetched_at: Optional[datetime] = None
    failures: dict[SourceName, str] = Field(default_factory=dict)

    def slot(self, source: SourceName) -> list[CanonicalMatch]:
        return getattr(self, source.value)

    @property
    def total(self) -> int:
        return len(self.custom_store) + len(self.api_football) + len(self.football_data)


class BoardView(DomainModel):
    """What the rendering layer receives after each fetch cycle or user interaction."""
    status: StatusFilter = StatusFilter.ALL
    day: Optional[date] = None
    timezone: str = "UTC"
    counts: dict[str, int] = Field(default_factory=dict)
    leagues: list[LeagueGroup] = Field(default_factory=list)
    empty: bool = True
    message: Optional[str] = NO_MATCHES_MESSAGE
    seq: int = 0
    fetched_at: Optional[datetime] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
