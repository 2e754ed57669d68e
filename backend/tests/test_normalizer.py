"""
Unit tests for record parsing and per-source normalization.

Run: pytest backend/tests/test_normalizer.py -v
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ingest.errors import MalformedRecord
from ingest.normalization.normalizer import (
    map_api_football_status,
    map_custom_status,
    map_football_data_status,
    normalize,
    normalize_many,
    parse_instant,
)
from shared.models.domain import DEFAULT_LEAGUE_NAME, DEFAULT_TEAM_NAME, CanonicalMatch
from shared.models.enums import MatchStatus, SourceName
from shared.models.records import (
    ApiFootballFixture,
    CustomStoreRecord,
    FootballDataMatch,
    parse_record,
    safe_int,
)


def _fixture(short: str = "NS", **overrides) -> dict:
    raw = {
        "fixture": {
            "id": 1035,
            "date": "2025-03-01T15:00:00+00:00",
            "timestamp": 1740841200,
            "status": {"short": short, "long": "whatever", "elapsed": 67},
        },
        "league": {"id": 39, "name": "Premier League", "country": "England", "logo": "pl.png"},
        "teams": {"home": {"id": 50, "name": "Man City"}, "away": {"id": 42, "name": "Arsenal"}},
        "goals": {"home": 1, "away": 0},
    }
    raw.update(overrides)
    return raw


def _fd_match(status: str = "SCHEDULED", **overrides) -> dict:
    raw = {
        "id": 4411,
        "utcDate": "2025-03-01T20:00:00Z",
        "status": status,
        "minute": 12,
        "homeTeam": {"id": 86, "name": "Real Madrid", "shortName": "Real"},
        "awayTeam": {"id": 81, "name": "FC Barcelona", "shortName": "Barça"},
        "score": {"fullTime": {"home": 3, "away": 2}},
        "competition": {"id": 2014, "name": "Primera Division", "emblem": "pd.png", "area": {"name": "Spain"}},
        "area": {"name": "Europe"},
    }
    raw.update(overrides)
    return raw


# ── Status tables ───────────────────────────────────────────────────────

@pytest.mark.parametrize("code", ["1H", "2H", "LIVE", "HT", "ET", "P"])
def test_api_football_in_play_codes_are_live(code: str) -> None:
    assert map_api_football_status(code) == MatchStatus.LIVE


def test_api_football_ns_and_ft() -> None:
    assert map_api_football_status("NS") == MatchStatus.UPCOMING
    assert map_api_football_status("FT") == MatchStatus.FINISHED


@pytest.mark.parametrize("code", ["SUSP", "PST", "AET", "PEN", "ns", "", None])
def test_api_football_unmapped_codes_are_upcoming(code) -> None:
    assert map_api_football_status(code) == MatchStatus.UPCOMING


def test_football_data_in_play_and_scheduled() -> None:
    assert map_football_data_status("IN_PLAY") == MatchStatus.LIVE
    assert map_football_data_status("SCHEDULED") == MatchStatus.UPCOMING


@pytest.mark.parametrize("status", ["FINISHED", "POSTPONED", "PAUSED", "TIMED", "CANCELLED", "", None])
def test_football_data_everything_else_is_finished(status) -> None:
    assert map_football_data_status(status) == MatchStatus.FINISHED


def test_custom_status_passthrough() -> None:
    assert map_custom_status("live") == MatchStatus.LIVE
    assert map_custom_status("finished") == MatchStatus.FINISHED
    assert map_custom_status("upcoming") == MatchStatus.UPCOMING


@pytest.mark.parametrize("status", ["LIVE", "in_play", None, 3])
def test_custom_status_unknown_is_upcoming(status) -> None:
    assert map_custom_status(status) == MatchStatus.UPCOMING


# ── Field helpers ───────────────────────────────────────────────────────

def test_parse_instant_iso_with_z() -> None:
    assert parse_instant("2025-03-01T20:00:00Z") == datetime(2025, 3, 1, 20, tzinfo=timezone.utc)


def test_parse_instant_epoch_seconds() -> None:
    assert parse_instant(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_parse_instant_naive_is_utc() -> None:
    assert parse_instant(datetime(2025, 1, 1, 12)).tzinfo == timezone.utc


@pytest.mark.parametrize("value", ["15:00", "", "not a date", None, True, {"x": 1}])
def test_parse_instant_rejects_non_instants(value) -> None:
    assert parse_instant(value) is None


def test_safe_int() -> None:
    assert safe_int("3") == 3
    assert safe_int(2.0) == 2
    assert safe_int("2.0") == 2
    assert safe_int("x") is None
    assert safe_int(None) is None
    assert safe_int(True) is None


# ── Record parsing ──────────────────────────────────────────────────────

def test_parse_record_rejects_non_objects() -> None:
    with pytest.raises(MalformedRecord) as exc:
        parse_record(SourceName.API_FOOTBALL, ["not", "a", "fixture"])
    assert exc.value.source == SourceName.API_FOOTBALL


def test_parse_record_tags_source() -> None:
    assert isinstance(parse_record(SourceName.API_FOOTBALL, _fixture()), ApiFootballFixture)
    assert isinstance(parse_record(SourceName.FOOTBALL_DATA, _fd_match()), FootballDataMatch)
    assert isinstance(parse_record(SourceName.CUSTOM_STORE, {"fields": {}}), CustomStoreRecord)


def test_parse_record_tolerates_null_nested_objects() -> None:
    record = parse_record(SourceName.API_FOOTBALL, {"fixture": None, "teams": {"home": None}, "goals": "?"})
    assert record.fixture.status.short is None
    assert record.teams.home.name is None
    assert record.goals.home is None


def test_parse_record_ignores_foreign_source_tag() -> None:
    record = parse_record(SourceName.FOOTBALL_DATA, {**_fd_match(), "source": "api_football"})
    assert record.source == SourceName.FOOTBALL_DATA


# ── API-Football normalization ──────────────────────────────────────────

def test_api_football_fixture_normalized() -> None:
    match = normalize(parse_record(SourceName.API_FOOTBALL, _fixture("2H")))
    assert match.home_team == "Man City"
    assert match.away_team == "Arsenal"
    assert (match.home_score, match.away_score) == (1, 0)
    assert match.status == MatchStatus.LIVE
    assert match.minute == 67
    assert match.kickoff_time == datetime(2025, 3, 1, 15, tzinfo=timezone.utc)
    assert match.league.id == "39"
    assert match.league.name == "Premier League"
    assert match.league.country == "England"
    assert match.source == SourceName.API_FOOTBALL
    assert match.source_match_id == "1035"


def test_api_football_susp_is_upcoming_without_error() -> None:
    match = normalize(parse_record(SourceName.API_FOOTBALL, _fixture("SUSP", goals={"home": None, "away": None})))
    assert match.status == MatchStatus.UPCOMING
    assert match.home_score is None
    assert match.minute is None


def test_api_football_timestamp_fallback() -> None:
    raw = _fixture("NS")
    raw["fixture"]["date"] = None
    match = normalize(parse_record(SourceName.API_FOOTBALL, raw))
    assert match.kickoff_time == datetime.fromtimestamp(1740841200, tz=timezone.utc)


def test_api_football_missing_everything_defaults() -> None:
    match = normalize(parse_record(SourceName.API_FOOTBALL, {}))
    assert match.home_team == DEFAULT_TEAM_NAME
    assert match.away_team == DEFAULT_TEAM_NAME
    assert match.status == MatchStatus.UPCOMING
    assert match.kickoff_time is None
    assert match.league.name == DEFAULT_LEAGUE_NAME
    assert match.league.group_key == DEFAULT_LEAGUE_NAME


def test_api_football_finished_without_goals_reads_zero() -> None:
    match = normalize(parse_record(SourceName.API_FOOTBALL, _fixture("FT", goals={})))
    assert match.status == MatchStatus.FINISHED
    assert (match.home_score, match.away_score) == (0, 0)


# ── football-data normalization ─────────────────────────────────────────

def test_football_data_match_normalized() -> None:
    match = normalize(parse_record(SourceName.FOOTBALL_DATA, _fd_match("IN_PLAY")))
    assert match.home_team == "Real Madrid"
    assert match.away_team == "FC Barcelona"
    assert (match.home_score, match.away_score) == (3, 2)
    assert match.status == MatchStatus.LIVE
    assert match.minute == 12
    assert match.league.id == "2014"
    assert match.league.country == "Spain"
    assert match.league.logo == "pd.png"


def test_football_data_country_falls_back_to_match_area() -> None:
    raw = _fd_match(competition={"id": 2001, "name": "Champions League"})
    match = normalize(parse_record(SourceName.FOOTBALL_DATA, raw))
    assert match.league.country == "Europe"


def test_football_data_postponed_is_finished() -> None:
    raw = _fd_match("POSTPONED", score={"fullTime": {"home": None, "away": None}})
    match = normalize(parse_record(SourceName.FOOTBALL_DATA, raw))
    assert match.status == MatchStatus.FINISHED
    assert (match.home_score, match.away_score) == (0, 0)
    assert match.minute is None


# ── Custom store normalization ──────────────────────────────────────────

def test_custom_store_document_normalized() -> None:
    record = parse_record(SourceName.CUSTOM_STORE, {
        "doc_id": "m1",
        "fields": {
            "homeTeam": "Man City",
            "awayTeam": "Arsenal",
            "homeScore": 2,
            "awayScore": "2",
            "status": "live",
            "kickoffTime": datetime(2025, 3, 1, 17, 30, tzinfo=timezone.utc),
            "leagueId": "epl",
        },
        "league": {"id": "epl", "name": "Premier League", "country": "England", "logo": None},
    })
    match = normalize(record)
    assert match.home_team == "Man City"
    assert (match.home_score, match.away_score) == (2, 2)
    assert match.status == MatchStatus.LIVE
    assert match.league.id == "epl"
    assert match.league.logo is None
    assert match.source == SourceName.CUSTOM_STORE
    assert match.source_match_id == "m1"


def test_custom_store_fallback_keys() -> None:
    record = parse_record(SourceName.CUSTOM_STORE, {
        "fields": {
            "home": {"name": "Celtic"},
            "away_name": "Rangers",
            "home_score": 1,
            "scoreAway": 1,
            "status": "finished",
            "utcDate": "2025-03-02T12:00:00Z",
        },
    })
    match = normalize(record)
    assert (match.home_team, match.away_team) == ("Celtic", "Rangers")
    assert (match.home_score, match.away_score) == (1, 1)
    assert match.kickoff_time == datetime(2025, 3, 2, 12, tzinfo=timezone.utc)


def test_custom_store_bare_clock_time_has_no_kickoff() -> None:
    record = parse_record(SourceName.CUSTOM_STORE, {"fields": {"time": "15:00"}})
    match = normalize(record)
    assert match.kickoff_time is None
    assert match.status == MatchStatus.UPCOMING
    assert match.home_score is None


# ── Dispatch ────────────────────────────────────────────────────────────

def test_normalize_rejects_unknown_record() -> None:
    with pytest.raises(TypeError):
        normalize({"fixture": {}})  # type: ignore[arg-type]


def test_normalize_many_preserves_order() -> None:
    records = [
        parse_record(SourceName.API_FOOTBALL, _fixture("NS")),
        parse_record(SourceName.API_FOOTBALL, _fixture("FT")),
        parse_record(SourceName.API_FOOTBALL, _fixture("HT")),
    ]
    statuses = [m.status for m in normalize_many(records)]
    assert statuses == [MatchStatus.UPCOMING, MatchStatus.FINISHED, MatchStatus.LIVE]


def test_canonical_match_requires_scores_after_kickoff() -> None:
    with pytest.raises(ValueError):
        CanonicalMatch(source=SourceName.CUSTOM_STORE, status=MatchStatus.LIVE)
