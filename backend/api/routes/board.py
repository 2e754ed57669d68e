"""
Board REST endpoints.

GET  /v1/board    merged, filtered, league-grouped matches for one day.
GET  /v1/dates    the seven-day navigation window.
POST /v1/refresh  schedule an immediate refetch of every source.
"""
from __future__ import annotations

from datetime import date, tzinfo
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from board.dates import CENTER_INDEX, build_date_window, local_today, resolve_timezone, selected_day
from board.pipeline import build_board
from shared.config import get_settings
from shared.models.enums import StatusFilter
from shared.utils.logging import get_logger

from api.dependencies import get_scheduler
from scheduler.service import RefreshScheduler

logger = get_logger(__name__)
router = APIRouter(prefix="/v1", tags=["board"])


def _observer_zone(tz_name: Optional[str]) -> tzinfo:
    try:
        return resolve_timezone(tz_name or get_settings().board_timezone)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _window_size() -> int:
    return get_settings().date_window_size


@router.get("/board")
async def get_board(
    status: StatusFilter = Query(StatusFilter.ALL, description="Status tab"),
    offset: int = Query(0, description="Days the window is shifted from today"),
    day_index: int = Query(CENTER_INDEX, description="Selected position in the window"),
    tz: Optional[str] = Query(None, description="IANA zone of the observer"),
    date_filter: bool = Query(True, description="Restrict to the selected day"),
    scheduler: RefreshScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    """
    Current board for the observer.

    The selected day is resolved in the observer's zone; with
    date_filter=false every match from the last snapshot is shown.
    """
    zone = _observer_zone(tz)
    day: Optional[date] = None
    if date_filter:
        try:
            day = selected_day(local_today(zone), offset, day_index, _window_size())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

    view = build_board(scheduler.snapshot, status, day, zone)
    return view.model_dump(mode="json")


@router.get("/dates")
async def get_dates(
    offset: int = Query(0, description="Days the window is shifted from today"),
    day_index: int = Query(CENTER_INDEX, description="Selected position in the window"),
    tz: Optional[str] = Query(None, description="IANA zone of the observer"),
) -> dict[str, Any]:
    zone = _observer_zone(tz)
    size = _window_size()
    if not 0 <= day_index < size:
        raise HTTPException(status_code=400, detail=f"day index must be between 0 and {size - 1}, got {day_index}")

    today = local_today(zone)
    try:
        days = build_date_window(today, offset, day_index, size)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "timezone": str(zone),
        "today": today.isoformat(),
        "offset": offset,
        "days": [d.model_dump(mode="json") for d in days],
    }


@router.post("/refresh", status_code=202)
async def trigger_refresh(
    scheduler: RefreshScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    """Manual refresh, also the target of the custom store's change notifications."""
    scheduler.request_refresh()
    return {"status": "accepted", "published_seq": scheduler.snapshot.seq}
