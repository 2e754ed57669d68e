"""
Source record shapes, one per upstream provider.

Together they form a tagged union discriminated by ``source``. Parsing is
lenient: missing or null nested objects become empty sub-models and scalar
fields that cannot be read become None, so a record is always constructible
from any JSON object the provider returns.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from ingest.errors import MalformedRecord
from shared.models.enums import SourceName


def safe_int(val: Any) -> Optional[int]:
    if val is None or isinstance(val, bool):
        return None
    try:
        return int(val)
    except (ValueError, TypeError):
        pass
    try:
        return int(float(val))
    except (ValueError, TypeError, OverflowError):
        return None


def safe_str(val: Any) -> Optional[str]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (str, int, float)):
        return str(val)
    return None


def _mapping_or_empty(val: Any) -> Any:
    return val if isinstance(val, dict) else {}


LenientInt = Annotated[Optional[int], BeforeValidator(safe_int)]
LenientStr = Annotated[Optional[str], BeforeValidator(safe_str)]


class RecordModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ── Custom store (Firestore documents) ──────────────────────────────────
class CustomStoreLeague(RecordModel):
    id: LenientStr = None
    name: LenientStr = None
    country: LenientStr = None
    logo: LenientStr = None


class CustomStoreRecord(RecordModel):
    """A `matches` document with its `leagues` document joined in."""
    source: Literal[SourceName.CUSTOM_STORE] = SourceName.CUSTOM_STORE
    doc_id: LenientStr = None
    fields: Annotated[dict[str, Any], BeforeValidator(_mapping_or_empty)] = Field(default_factory=dict)
    league: Optional[CustomStoreLeague] = None


# ── API-Football v3 fixtures ────────────────────────────────────────────
class ApiFootballStatus(RecordModel):
    short: LenientStr = None
    long: LenientStr = None
    elapsed: LenientInt = None


class ApiFootballFixtureInfo(RecordModel):
    id: LenientStr = None
    date: LenientStr = None
    timestamp: LenientInt = None
    status: Annotated[ApiFootballStatus, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=ApiFootballStatus
    )


class ApiFootballTeam(RecordModel):
    id: LenientStr = None
    name: LenientStr = None
    logo: LenientStr = None


class ApiFootballTeams(RecordModel):
    home: Annotated[ApiFootballTeam, BeforeValidator(_mapping_or_empty)] = Field(default_factory=ApiFootballTeam)
    away: Annotated[ApiFootballTeam, BeforeValidator(_mapping_or_empty)] = Field(default_factory=ApiFootballTeam)


class ApiFootballGoals(RecordModel):
    home: LenientInt = None
    away: LenientInt = None


class ApiFootballLeague(RecordModel):
    id: LenientStr = None
    name: LenientStr = None
    country: LenientStr = None
    logo: LenientStr = None


class ApiFootballFixture(RecordModel):
    source: Literal[SourceName.API_FOOTBALL] = SourceName.API_FOOTBALL
    fixture: Annotated[ApiFootballFixtureInfo, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=ApiFootballFixtureInfo
    )
    league: Annotated[ApiFootballLeague, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=ApiFootballLeague
    )
    teams: Annotated[ApiFootballTeams, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=ApiFootballTeams
    )
    goals: Annotated[ApiFootballGoals, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=ApiFootballGoals
    )


# ── football-data.org v4 matches ────────────────────────────────────────
class FootballDataTeam(RecordModel):
    id: LenientStr = None
    name: LenientStr = None
    short_name: LenientStr = Field(default=None, alias="shortName")
    crest: LenientStr = None


class FootballDataScoreLine(RecordModel):
    home: LenientInt = None
    away: LenientInt = None


class FootballDataScore(RecordModel):
    full_time: Annotated[FootballDataScoreLine, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataScoreLine, alias="fullTime"
    )


class FootballDataArea(RecordModel):
    name: LenientStr = None


class FootballDataCompetition(RecordModel):
    id: LenientStr = None
    name: LenientStr = None
    emblem: LenientStr = None
    area: Annotated[FootballDataArea, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataArea
    )


class FootballDataMatch(RecordModel):
    source: Literal[SourceName.FOOTBALL_DATA] = SourceName.FOOTBALL_DATA
    id: LenientStr = None
    utc_date: LenientStr = Field(default=None, alias="utcDate")
    status: LenientStr = None
    minute: LenientInt = None
    home_team: Annotated[FootballDataTeam, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataTeam, alias="homeTeam"
    )
    away_team: Annotated[FootballDataTeam, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataTeam, alias="awayTeam"
    )
    score: Annotated[FootballDataScore, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataScore
    )
    competition: Annotated[FootballDataCompetition, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataCompetition
    )
    area: Annotated[FootballDataArea, BeforeValidator(_mapping_or_empty)] = Field(
        default_factory=FootballDataArea
    )


SourceRecord = Annotated[
    Union[CustomStoreRecord, ApiFootballFixture, FootballDataMatch],
    Field(discriminator="source"),
]

RECORD_TYPES: dict[SourceName, type[RecordModel]] = {
    SourceName.CUSTOM_STORE: CustomStoreRecord,
    SourceName.API_FOOTBALL: ApiFootballFixture,
    SourceName.FOOTBALL_DATA: FootballDataMatch,
}


def parse_record(source: SourceName, raw: Any) -> SourceRecord:
    """
    Parse one raw provider entry into its record shape.

    Raises:
        MalformedRecord: If the entry is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord(source, f"expected an object, got {type(raw).__name__}")
    payload = {k: v for k, v in raw.items() if k != "source"}
    try:
        return RECORD_TYPES[source].model_validate(payload)
    except ValidationError as exc:
        raise MalformedRecord(source, str(exc)) from exc
