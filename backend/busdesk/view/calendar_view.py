from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Any, Iterable, Optional

import httpx

from busdesk.client.http import describe_error
from busdesk.client.schedule_service import ScheduleService
from busdesk.client.schemas import CreateScheduleData
from busdesk.schedule.calendar_index import CalendarIndex, days_in_month, shift_month, sort_by_departure
from busdesk.schedule.normalize import normalize, normalize_record
from busdesk.schedule.timeline import DEFAULT_SLOT_HOURS, bucketize
from busdesk.schedule.types import CanonicalSchedule, NormalizeReport

logger = logging.getLogger(__name__)

ALL_INVALID_MESSAGE = "All schedule data was invalid. Please check the database."
READ_ONLY_ROLES = {"viewer"}


def can_manage_schedules(role: Optional[str]) -> bool:
    # display hint only; the backend enforces permissions
    return bool(role) and role not in READ_ONLY_ROLES


class CalendarView:
    """
    State behind the schedule calendar screen.

    Every fetch gets a monotonically increasing token. A response is applied
    only if its token is newer than the last one applied, so a slow response
    to an earlier month never overwrites a later one.
    """

    def __init__(
        self,
        service: ScheduleService,
        *,
        tz: Optional[tzinfo] = None,
        today: Optional[date] = None,
        slot_hours: Iterable[Any] = DEFAULT_SLOT_HOURS,
    ):
        self.service = service
        self.tz = tz
        self.slot_hours = tuple(slot_hours)

        start = today or datetime.now(tz).date()
        self.current_date: date = start
        self.selected_date: date = start

        self.schedules: list[CanonicalSchedule] = []
        self.index = CalendarIndex([], tz)
        self.report = NormalizeReport()
        self.loading = False
        self.error = ""

        self._issued = 0
        self._applied = 0

    # --- fetch lifecycle ---

    def begin_fetch(self) -> int:
        self._issued += 1
        self.loading = True
        self.error = ""
        return self._issued

    def _finish(self, token: int) -> bool:
        if token == self._issued:
            self.loading = False
        if token <= self._applied:
            logger.info("Discarding stale schedule response token=%d applied=%d", token, self._applied)
            return False
        self._applied = token
        return True

    def complete_fetch(self, token: int, raw_records: Iterable[Any]) -> bool:
        if not self._finish(token):
            return False

        result = normalize(raw_records, self.tz)
        self._set_schedules(result.schedules)
        self.report = result.report

        logger.info("Schedules normalized: %s", result.report.as_dict())
        self.error = ALL_INVALID_MESSAGE if result.report.all_invalid else ""
        return True

    def fail_fetch(self, token: int, err: Exception) -> bool:
        if not self._finish(token):
            return False

        logger.error("Failed to fetch schedules: %r", err)
        self._set_schedules([])
        self.report = NormalizeReport()
        self.error = "Failed to load schedules: " + describe_error(err)
        return True

    def refresh(self) -> None:
        token = self.begin_fetch()
        try:
            resp = self.service.list_schedules()
        except (httpx.HTTPError, ValueError) as e:
            self.fail_fetch(token, e)
            return
        self.complete_fetch(token, resp.schedules)

    def _set_schedules(self, schedules: list[CanonicalSchedule]) -> None:
        self.schedules = schedules
        self.index = CalendarIndex(schedules, self.tz)

    # --- navigation / selection ---

    def navigate_month(self, direction: str) -> bool:
        new_date = shift_month(self.current_date, direction)
        if new_date == self.current_date:
            return False
        self.current_date = new_date
        self.refresh()
        return True

    def go_to_today(self) -> None:
        today = datetime.now(self.tz).date()
        self.current_date = today
        self.selected_date = today

    def select_date(self, day: Any) -> bool:
        if not isinstance(day, date):
            return False
        self.selected_date = day.date() if isinstance(day, datetime) else day
        return True

    # --- derived views ---

    def month_grid(self) -> list[Optional[date]]:
        return days_in_month(self.current_date.year, self.current_date.month)

    def has_schedules(self, day: Any) -> bool:
        return self.index.has_day(day)

    def selected_day_schedules(self) -> list[CanonicalSchedule]:
        return sort_by_departure(self.index.on_day(self.selected_date))

    def timeline(self) -> dict[int, list[CanonicalSchedule]]:
        return bucketize(self.selected_day_schedules(), self.slot_hours, self.tz)

    # --- mutations ---

    def create_schedule(self, data: CreateScheduleData) -> dict:
        """
        POST, append the created record if it normalizes, then refetch.
        Creation errors propagate to the caller's form.
        """
        created = self.service.create_schedule(data)

        schedule = normalize_record(created, len(self.schedules), self.tz)
        if schedule is not None:
            self._set_schedules([*self.schedules, schedule])

        self.refresh()
        return created
