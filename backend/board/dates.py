"""
Date navigation for the board.

A window of seven calendar days centred on today in the observer's zone.
The prev/next controls move the whole window by one day (the offset); the
selected index picks a day inside it, index 3 being the centre.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

WINDOW_SIZE = 7
CENTER_INDEX = WINDOW_SIZE // 2


def _shift(today: date, days: int) -> date:
    try:
        return today + timedelta(days=days)
    except OverflowError as exc:
        raise ValueError(f"day offset {days} is outside the supported calendar range") from exc


class DayOption(BaseModel):
    index: int
    day: date
    weekday: str
    day_num: int
    is_today: bool = False
    selected: bool = False


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Look up an IANA zone name.

    Raises:
        ValueError: If the zone is unknown.
    """
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name}") from exc


def local_today(tz: tzinfo, now: Optional[datetime] = None) -> date:
    """Today's calendar date as seen from `tz`."""
    current = now or datetime.now(tz)
    return current.astimezone(tz).date()


def build_date_window(
    today: date,
    offset: int = 0,
    selected_index: int = CENTER_INDEX,
    size: int = WINDOW_SIZE,
) -> list[DayOption]:
    """
    The `size` days around today + offset, in calendar order.

    Raises:
        ValueError: If the shifted window leaves the supported calendar range.
    """
    half = size // 2
    days: list[DayOption] = []
    for index in range(size):
        day = _shift(today, offset + index - half)
        days.append(DayOption(
            index=index,
            day=day,
            weekday=day.strftime("%a"),
            day_num=day.day,
            is_today=day == today,
            selected=index == selected_index,
        ))
    return days


def selected_day(
    today: date,
    offset: int = 0,
    index: int = CENTER_INDEX,
    size: int = WINDOW_SIZE,
) -> date:
    """
    Resolve a selection in the shifted window to a calendar date.

    Raises:
        ValueError: If index falls outside the window or the day is out of range.
    """
    if not 0 <= index < size:
        raise ValueError(f"day index must be between 0 and {size - 1}, got {index}")
    return _shift(today, offset + index - size // 2)
