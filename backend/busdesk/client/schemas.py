import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from busdesk.schedule.utils.time import parse_instant

ScheduleStatus = Literal["scheduled", "in-progress", "completed", "cancelled", "delayed", "active"]

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def _clock(value: str) -> Optional[str]:
    """Zero-pads an H:MM or HH:MM clock time; None for anything else."""
    m = _CLOCK_RE.match(value.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def _instant(value: str, day: str) -> Optional[datetime]:
    clock = _clock(value)
    if clock is not None:
        return parse_instant(f"{day}T{clock}")
    return parse_instant(value)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ScheduleQuery(_CamelModel):
    route_id: Optional[str] = Field(None, alias="routeId")
    bus_id: Optional[str] = Field(None, alias="busId")
    date: Optional[str] = Field(None, description="YYYY-MM-DD")
    status: Optional[str] = None
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)


class CreateScheduleData(_CamelModel):
    route_id: str = Field(..., alias="routeId", min_length=1)
    bus_id: str = Field(..., alias="busId", min_length=1)
    date: str = Field(..., description="YYYY-MM-DD")
    departure_time: str = Field(..., alias="departureTime", description="HH:MM or ISO datetime")
    arrival_time: str = Field(..., alias="arrivalTime", description="HH:MM or ISO datetime")
    frequency: Optional[str] = "once"
    status: Optional[ScheduleStatus] = "scheduled"

    @model_validator(mode="after")
    def _arrival_after_departure(self):
        dep_clock, arr_clock = _clock(self.departure_time), _clock(self.arrival_time)
        if dep_clock is not None and arr_clock is not None:
            if dep_clock >= arr_clock:
                raise ValueError("Arrival time must be after departure time")
            return self

        # a bare clock time is read on the schedule date, in local time
        departure = _instant(self.departure_time, self.date)
        arrival = _instant(self.arrival_time, self.date)
        if departure is None or arrival is None:
            raise ValueError("Departure and arrival must be HH:MM or ISO datetimes")
        if departure >= arrival:
            raise ValueError("Arrival time must be after departure time")
        return self


class UpdateScheduleData(_CamelModel):
    route_id: Optional[str] = Field(None, alias="routeId")
    bus_id: Optional[str] = Field(None, alias="busId")
    date: Optional[str] = None
    departure_time: Optional[str] = Field(None, alias="departureTime")
    arrival_time: Optional[str] = Field(None, alias="arrivalTime")
    frequency: Optional[str] = None
    status: Optional[ScheduleStatus] = None
    actual_departure_time: Optional[str] = Field(None, alias="actualDepartureTime")
    actual_arrival_time: Optional[str] = Field(None, alias="actualArrivalTime")
    delay: Optional[int] = None
    passenger_count: Optional[int] = Field(None, alias="passengerCount", ge=0)


_LIST_META = ("total", "page", "pages")


class ScheduleListResponse(BaseModel):
    # records stay untyped here; busdesk.schedule.normalize owns validation
    schedules: list[Any] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 1

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"schedules": data, "total": len(data)}
        if isinstance(data, dict):
            # null paging metadata falls back to the field defaults
            data = {k: v for k, v in data.items() if not (k in _LIST_META and v is None)}
            if data.get("schedules") is None:
                data["schedules"] = []
            return data
        if data is None:
            return {}
        return data
