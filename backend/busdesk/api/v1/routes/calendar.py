from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Optional

import httpx
import pytz
from fastapi import APIRouter, Depends, HTTPException, Query

from busdesk.api.v1.schemas.calendar import (
    DayCell,
    DayView,
    Diagnostics,
    MonthView,
    ScheduleOut,
    TimelineSlot,
    TimelineView,
)
from busdesk.client.http import describe_error
from busdesk.client.schedule_service import ScheduleService
from busdesk.client.schemas import CreateScheduleData
from busdesk.core.config import AppConfig
from busdesk.core.deps import get_config, get_schedule_service
from busdesk.schedule.calendar_index import CalendarIndex, days_in_month, sort_by_departure
from busdesk.schedule.format import format_clock, format_duration, month_title, status_label, status_style
from busdesk.schedule.normalize import normalize
from busdesk.schedule.timeline import bucketize, slot_hours_between, slot_label
from busdesk.schedule.types import CanonicalSchedule, NormalizeResult
from busdesk.schedule.utils.time import resolve_tz, to_local
from busdesk.view.calendar_view import ALL_INVALID_MESSAGE

router = APIRouter(prefix="/v1", tags=["calendar"])


def today_for(cfg: AppConfig) -> date:
    if cfg.timezone:
        return datetime.now(pytz.timezone(cfg.timezone)).date()
    return date.today()


def parse_day(date_str: str) -> date:
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")


def load_schedules(service: ScheduleService, tz: Optional[tzinfo]) -> NormalizeResult:
    try:
        resp = service.list_schedules()
    except (httpx.HTTPError, ValueError) as e:
        raise HTTPException(status_code=502, detail="Failed to load schedules: " + describe_error(e))
    return normalize(resp.schedules, tz)


def to_schedule_out(s: CanonicalSchedule, tz: Optional[tzinfo]) -> ScheduleOut:
    return ScheduleOut(
        id=s.id,
        date=s.calendar_date,
        departure_time=to_local(s.departure, tz).isoformat(),
        arrival_time=to_local(s.arrival, tz).isoformat(),
        departure_clock=format_clock(s.departure, tz),
        arrival_clock=format_clock(s.arrival, tz),
        duration=format_duration(s.departure, s.arrival),
        route=s.route_label,
        bus=s.bus_label,
        status=s.status,
        status_label=status_label(s.status),
        status_style=status_style(s.status),
        passenger_count=s.passenger_count,
        frequency=s.frequency,
    )


def _error_for(result: NormalizeResult) -> Optional[str]:
    return ALL_INVALID_MESSAGE if result.report.all_invalid else None


@router.get("/calendar/month", response_model=MonthView)
def get_month(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    selected: Optional[str] = Query(None, description="YYYY-MM-DD"),
    cfg: AppConfig = Depends(get_config),
    service: ScheduleService = Depends(get_schedule_service),
):
    today = today_for(cfg)
    year = year or today.year
    month = month or today.month
    selected_day = parse_day(selected) if selected else None

    tz = resolve_tz(cfg.timezone)
    result = load_schedules(service, tz)
    index = CalendarIndex(result.schedules, tz)
    counts = index.month_counts(year, month)

    cells: list[Optional[DayCell]] = []
    for d in days_in_month(year, month):
        if d is None:
            cells.append(None)
            continue
        cells.append(
            DayCell(
                date=d,
                schedule_count=counts.get(d, 0),
                is_today=(d == today),
                is_selected=(d == selected_day),
            )
        )

    return MonthView(
        year=year,
        month=month,
        title=month_title(date(year, month, 1)),
        cells=cells,
        total_schedules=len(index),
        diagnostics=Diagnostics(**result.report.as_dict()),
        error=_error_for(result),
    )


@router.get("/calendar/day", response_model=DayView)
def get_day(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    cfg: AppConfig = Depends(get_config),
    service: ScheduleService = Depends(get_schedule_service),
):
    day = parse_day(date_str)
    tz = resolve_tz(cfg.timezone)
    result = load_schedules(service, tz)

    on_day = sort_by_departure(CalendarIndex(result.schedules, tz).on_day(day))

    return DayView(
        date=day,
        schedules=[to_schedule_out(s, tz) for s in on_day],
        diagnostics=Diagnostics(**result.report.as_dict()),
        error=_error_for(result),
    )


@router.get("/calendar/timeline", response_model=TimelineView)
def get_timeline(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    cfg: AppConfig = Depends(get_config),
    service: ScheduleService = Depends(get_schedule_service),
):
    day = parse_day(date_str)
    tz = resolve_tz(cfg.timezone)
    result = load_schedules(service, tz)

    on_day = sort_by_departure(CalendarIndex(result.schedules, tz).on_day(day))
    buckets = bucketize(on_day, slot_hours_between(cfg.slot_start_hour, cfg.slot_end_hour), tz)

    slots = [
        TimelineSlot(
            slot=slot_label(hour),
            hour=hour,
            count=len(items),
            first_bus=items[0].bus_label if items else None,
            schedule_ids=[s.id for s in items],
        )
        for hour, items in buckets.items()
    ]
    return TimelineView(date=day, slots=slots, error=_error_for(result))


@router.post("/schedules", status_code=201)
def create_schedule(
    payload: CreateScheduleData,
    service: ScheduleService = Depends(get_schedule_service),
) -> dict:
    try:
        # an empty 201 body comes back as None
        return service.create_schedule(payload) or {}
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise HTTPException(status_code=status if 400 <= status < 500 else 502, detail=describe_error(e))
    except httpx.HTTPError as e:
        raise HTTPException(status_code=502, detail=describe_error(e))
