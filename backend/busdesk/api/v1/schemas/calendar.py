import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class Diagnostics(BaseModel):
    total: int
    accepted: int
    rejected: int
    synthesized_ids: int
    reasons: dict[str, int] = Field(default_factory=dict)


class DayCell(BaseModel):
    date: dt.date
    schedule_count: int
    is_today: bool
    is_selected: bool = False


class MonthView(BaseModel):
    year: int
    month: int
    title: str = Field(..., description='e.g. "October 2025"')
    cells: list[Optional[DayCell]]
    total_schedules: int
    diagnostics: Diagnostics
    error: Optional[str] = None


class ScheduleOut(BaseModel):
    id: str
    date: dt.date
    departure_time: str = Field(..., description="ISO datetime, viewer zone")
    arrival_time: str = Field(..., description="ISO datetime, viewer zone")
    departure_clock: str
    arrival_clock: str
    duration: str
    route: str
    bus: str
    status: str
    status_label: str
    status_style: str
    passenger_count: int
    frequency: Optional[str] = None


class DayView(BaseModel):
    date: dt.date
    schedules: list[ScheduleOut]
    diagnostics: Diagnostics
    error: Optional[str] = None


class TimelineSlot(BaseModel):
    slot: str = Field(..., description="HH:00")
    hour: int
    count: int
    first_bus: Optional[str] = None
    schedule_ids: list[str]


class TimelineView(BaseModel):
    date: dt.date
    slots: list[TimelineSlot]
    error: Optional[str] = None
