"""
Board pipeline: merge -> status filter -> day filter -> group by league.

Every function here is pure. The rendering layer calls `compute_view`
after each fetch cycle or user interaction (filter tab, day selection,
shifting the day window).
"""
from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional, Sequence, Union

from shared.models.domain import (
    NO_MATCHES_MESSAGE,
    BoardView,
    CanonicalMatch,
    LeagueGroup,
    SourceSnapshot,
)
from shared.models.enums import MatchStatus, SourceName, StatusFilter

StatusArg = Union[StatusFilter, MatchStatus, str]


def merge(*source_lists: Iterable[CanonicalMatch]) -> list[CanonicalMatch]:
    """
    Concatenate normalized source lists in the order given.

    No deduplication: two sources reporting the same fixture yield two entries.
    """
    merged: list[CanonicalMatch] = []
    for matches in source_lists:
        merged.extend(matches)
    return merged


def merge_sources(snapshot: SourceSnapshot) -> list[CanonicalMatch]:
    """Merge a snapshot's slots: custom store, then API-Football, then football-data."""
    return merge(*(snapshot.slot(name) for name in SourceName))


def _status_value(status: StatusArg) -> str:
    return status.value if isinstance(status, (StatusFilter, MatchStatus)) else str(status)


def filter_by_status(
    matches: Sequence[CanonicalMatch], status: StatusArg
) -> Sequence[CanonicalMatch]:
    """Identity for "all"; otherwise keep matches whose canonical status equals `status`."""
    wanted = _status_value(status)
    if wanted == StatusFilter.ALL.value:
        return matches
    return [m for m in matches if m.status.value == wanted]


def kickoff_local_day(match: CanonicalMatch, tz: tzinfo) -> Optional[date]:
    """Calendar day of the kickoff instant as seen from `tz`."""
    if match.kickoff_time is None:
        return None
    return match.kickoff_time.astimezone(tz).date()


def filter_by_day(
    matches: Sequence[CanonicalMatch], day: date, tz: tzinfo = timezone.utc
) -> list[CanonicalMatch]:
    """
    Keep matches kicking off on `day` in the observer's zone.

    Compares year/month/day, not a 24-hour window. Matches without a kickoff
    time never appear in a day-filtered view.
    """
    return [m for m in matches if kickoff_local_day(m, tz) == day]


def group_by_league(matches: Iterable[CanonicalMatch]) -> list[LeagueGroup]:
    """
    Bucket matches by league id (name when the id is empty).

    Groups appear in first-seen order and keep their matches in input order;
    group metadata comes from the first match seen for the key.
    """
    groups: dict[str, LeagueGroup] = {}
    for match in matches:
        key = match.league.group_key
        group = groups.get(key)
        if group is None:
            group = LeagueGroup(
                id=key,
                name=match.league.name,
                country=match.league.country,
                logo=match.league.logo,
            )
            groups[key] = group
        group.matches.append(match)
    return list(groups.values())


def compute_view(
    sources: SourceSnapshot,
    filter_status: StatusArg = StatusFilter.ALL,
    selected_day: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> list[LeagueGroup]:
    """Merge, filter and group one snapshot for display."""
    matches: Sequence[CanonicalMatch] = merge_sources(sources)
    matches = filter_by_status(matches, filter_status)
    if selected_day is not None:
        matches = filter_by_day(matches, selected_day, tz)
    return group_by_league(matches)


def count_by_status(matches: Iterable[CanonicalMatch]) -> dict[str, int]:
    counts = {StatusFilter.ALL.value: 0, **{s.value: 0 for s in MatchStatus}}
    for match in matches:
        counts[StatusFilter.ALL.value] += 1
        counts[match.status.value] += 1
    return counts


def build_board(
    sources: SourceSnapshot,
    filter_status: StatusArg = StatusFilter.ALL,
    selected_day: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> BoardView:
    """
    Wrap `compute_view` into the payload served to the board.

    Tab counts are taken before the status filter so every tab shows how
    many matches it would hold for the selected day.
    """
    day_matches: Sequence[CanonicalMatch] = merge_sources(sources)
    if selected_day is not None:
        day_matches = filter_by_day(day_matches, selected_day, tz)

    leagues = compute_view(sources, filter_status, selected_day, tz)
    empty = not leagues
    return BoardView(
        status=StatusFilter(_status_value(filter_status)),
        day=selected_day,
        timezone=str(tz),
        counts=count_by_status(day_matches),
        leagues=leagues,
        empty=empty,
        message=NO_MATCHES_MESSAGE if empty else None,
        seq=sources.seq,
        fetched_at=sources.fetched_at,
        generated_at=datetime.now(timezone.utc),
    )
