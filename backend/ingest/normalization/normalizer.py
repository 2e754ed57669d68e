"""
Normalization layer for the ingest side.
Maps each source's native record onto the CanonicalMatch shape.

Normalizers never raise on missing or unreadable fields: names fall back to
"TBD", scores to None (or 0 once a match has kicked off), status to upcoming.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from shared.models.domain import (
    DEFAULT_LEAGUE_NAME,
    DEFAULT_TEAM_NAME,
    CanonicalMatch,
    LeagueRef,
)
from shared.models.enums import MatchStatus, SourceName
from shared.models.records import (
    ApiFootballFixture,
    CustomStoreRecord,
    FootballDataMatch,
    SourceRecord,
    safe_int,
)
from shared.utils.logging import get_logger
from shared.utils.metrics import INGEST_NORMALIZATIONS

logger = get_logger(__name__)

# ── Status tables ───────────────────────────────────────────────────────
API_FOOTBALL_STATUS: dict[str, MatchStatus] = {
    "NS": MatchStatus.UPCOMING,
    "FT": MatchStatus.FINISHED,
    "1H": MatchStatus.LIVE,
    "2H": MatchStatus.LIVE,
    "LIVE": MatchStatus.LIVE,
    "HT": MatchStatus.LIVE,
    "ET": MatchStatus.LIVE,
    "P": MatchStatus.LIVE,
}

FOOTBALL_DATA_STATUS: dict[str, MatchStatus] = {
    "IN_PLAY": MatchStatus.LIVE,
    "SCHEDULED": MatchStatus.UPCOMING,
}

# Fallback chains for loosely-typed custom store documents, first hit wins.
CUSTOM_HOME_TEAM_KEYS = ("homeTeam", "home", "home_name")
CUSTOM_AWAY_TEAM_KEYS = ("awayTeam", "away", "away_name")
CUSTOM_HOME_SCORE_KEYS = ("homeScore", "home_score", "scoreHome")
CUSTOM_AWAY_SCORE_KEYS = ("awayScore", "away_score", "scoreAway")
CUSTOM_KICKOFF_KEYS = ("kickoffTime", "kickoff", "utcDate", "date", "time")

_CANONICAL_VALUES = {s.value: s for s in MatchStatus}


def map_api_football_status(short: Optional[str]) -> MatchStatus:
    """Exact, case-sensitive lookup on fixture.status.short; unknown codes are upcoming."""
    return API_FOOTBALL_STATUS.get(short or "", MatchStatus.UPCOMING)


def map_football_data_status(status: Optional[str]) -> MatchStatus:
    """IN_PLAY and SCHEDULED are distinguished; every other state counts as finished."""
    return FOOTBALL_DATA_STATUS.get(status or "", MatchStatus.FINISHED)


def map_custom_status(status: Any) -> MatchStatus:
    """Canonical values pass through unchanged, anything else is upcoming."""
    if isinstance(status, str):
        return _CANONICAL_VALUES.get(status, MatchStatus.UPCOMING)
    return MatchStatus.UPCOMING


# ── Field helpers ───────────────────────────────────────────────────────

def parse_instant(value: Any) -> Optional[datetime]:
    """
    Read a kickoff instant from a datetime, an ISO-8601 string or epoch seconds.

    Returns an aware datetime (naive values are taken as UTC), or None when
    the value is not an instant, e.g. a bare "15:00" clock string.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw or "T" not in raw and "-" not in raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _first_present(fields: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = fields.get(key)
        if value is not None and value != "":
            return value
    return None


def _team_name(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("name")
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return DEFAULT_TEAM_NAME


def _settle_scores(
    status: MatchStatus, home: Optional[int], away: Optional[int]
) -> tuple[Optional[int], Optional[int]]:
    """Only upcoming matches may lack scores; kicked-off ones read 0 for a missing side."""
    if status == MatchStatus.UPCOMING:
        return home, away
    return (home if home is not None else 0, away if away is not None else 0)


def _league(
    league_id: Optional[str],
    name: Optional[str],
    country: Optional[str],
    logo: Optional[str],
) -> LeagueRef:
    return LeagueRef(
        id=league_id or "",
        name=name or DEFAULT_LEAGUE_NAME,
        country=country or "",
        logo=logo or None,
    )


# ── Per-source normalizers ──────────────────────────────────────────────

def normalize_custom_store(record: CustomStoreRecord) -> CanonicalMatch:
    """Normalize a Firestore `matches` document joined with its league."""
    fields = record.fields
    status = map_custom_status(fields.get("status"))
    home_score, away_score = _settle_scores(
        status,
        safe_int(_first_present(fields, CUSTOM_HOME_SCORE_KEYS)),
        safe_int(_first_present(fields, CUSTOM_AWAY_SCORE_KEYS)),
    )
    lg = record.league
    return CanonicalMatch(
        home_team=_team_name(_first_present(fields, CUSTOM_HOME_TEAM_KEYS)),
        away_team=_team_name(_first_present(fields, CUSTOM_AWAY_TEAM_KEYS)),
        home_score=home_score,
        away_score=away_score,
        status=status,
        kickoff_time=parse_instant(_first_present(fields, CUSTOM_KICKOFF_KEYS)),
        league=_league(lg.id, lg.name, lg.country, lg.logo) if lg else LeagueRef(),
        source=SourceName.CUSTOM_STORE,
        source_match_id=record.doc_id,
        minute=safe_int(fields.get("minute")),
    )


def normalize_api_football(record: ApiFootballFixture) -> CanonicalMatch:
    """Normalize an API-Football v3 fixture object."""
    fx = record.fixture
    status = map_api_football_status(fx.status.short)
    home_score, away_score = _settle_scores(status, record.goals.home, record.goals.away)

    kickoff = parse_instant(fx.date)
    if kickoff is None and fx.timestamp is not None:
        kickoff = parse_instant(fx.timestamp)

    return CanonicalMatch(
        home_team=_team_name(record.teams.home.name),
        away_team=_team_name(record.teams.away.name),
        home_score=home_score,
        away_score=away_score,
        status=status,
        kickoff_time=kickoff,
        league=_league(
            record.league.id, record.league.name, record.league.country, record.league.logo
        ),
        source=SourceName.API_FOOTBALL,
        source_match_id=fx.id,
        minute=fx.status.elapsed if status == MatchStatus.LIVE else None,
    )


def normalize_football_data(record: FootballDataMatch) -> CanonicalMatch:
    """Normalize a football-data.org v4 match object."""
    status = map_football_data_status(record.status)
    ft = record.score.full_time
    home_score, away_score = _settle_scores(status, ft.home, ft.away)
    comp = record.competition
    return CanonicalMatch(
        home_team=_team_name(record.home_team.name),
        away_team=_team_name(record.away_team.name),
        home_score=home_score,
        away_score=away_score,
        status=status,
        kickoff_time=parse_instant(record.utc_date),
        league=_league(
            comp.id,
            comp.name,
            comp.area.name or record.area.name,
            comp.emblem,
        ),
        source=SourceName.FOOTBALL_DATA,
        source_match_id=record.id,
        minute=record.minute if status == MatchStatus.LIVE else None,
    )


def normalize(record: SourceRecord) -> CanonicalMatch:
    """Dispatch on the record's source tag."""
    if isinstance(record, CustomStoreRecord):
        match = normalize_custom_store(record)
    elif isinstance(record, ApiFootballFixture):
        match = normalize_api_football(record)
    elif isinstance(record, FootballDataMatch):
        match = normalize_football_data(record)
    else:
        raise TypeError(f"Unsupported source record: {type(record).__name__}")

    INGEST_NORMALIZATIONS.labels(source=match.source.value, status=match.status.value).inc()
    return match


def normalize_many(records: Iterable[SourceRecord]) -> list[CanonicalMatch]:
    """Normalize records in order."""
    matches = [normalize(r) for r in records]
    logger.debug("records_normalized", count=len(matches))
    return matches
