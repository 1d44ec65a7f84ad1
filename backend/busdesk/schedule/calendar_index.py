from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, tzinfo
from typing import Any, Iterable, Optional

from busdesk.schedule.types import CanonicalSchedule
from busdesk.schedule.utils.time import as_calendar_date

PREVIOUS = ("previous", "prev")
NEXT = ("next",)


def schedules_on_day(
    schedules: Iterable[CanonicalSchedule],
    target: Any,
    tz: Optional[tzinfo] = None,
) -> list[CanonicalSchedule]:
    """
    Schedules whose local calendar day equals target's (year, month, day).
    Anything that is not a date/datetime yields [].
    """
    day = as_calendar_date(target, tz)
    if day is None:
        return []
    return [s for s in schedules if s.calendar_date == day]


def has_schedules_on_day(
    schedules: Iterable[CanonicalSchedule],
    target: Any,
    tz: Optional[tzinfo] = None,
) -> bool:
    return len(schedules_on_day(schedules, target, tz)) > 0


def sort_by_departure(schedules: Iterable[CanonicalSchedule]) -> list[CanonicalSchedule]:
    return sorted(schedules, key=lambda s: s.departure)


class CalendarIndex:
    """
    Day-keyed view over an already-normalized list, for month grids that
    query every cell.
    """

    def __init__(self, schedules: Iterable[CanonicalSchedule], tz: Optional[tzinfo] = None):
        self.tz = tz
        self._by_day: dict[date, list[CanonicalSchedule]] = defaultdict(list)
        self._count = 0
        for s in schedules:
            self._by_day[s.calendar_date].append(s)
            self._count += 1

    def __len__(self) -> int:
        return self._count

    def on_day(self, target: Any) -> list[CanonicalSchedule]:
        day = as_calendar_date(target, self.tz)
        if day is None:
            return []
        return list(self._by_day.get(day, []))

    def has_day(self, target: Any) -> bool:
        day = as_calendar_date(target, self.tz)
        return day is not None and bool(self._by_day.get(day))

    def month_counts(self, year: int, month: int) -> dict[date, int]:
        return {
            d: len(self._by_day.get(d, []))
            for d in days_in_month(year, month)
            if d is not None
        }


def _valid_year_month(year: Any, month: Any) -> bool:
    if isinstance(year, bool) or isinstance(month, bool):
        return False
    if not isinstance(year, int) or not isinstance(month, int):
        return False
    return 1 <= month <= 12 and 1 <= year <= 9999


def days_in_month(year: Any, month: Any) -> list[Optional[date]]:
    """
    Month grid cells: one None per weekday before the 1st (Sunday first),
    then every day of the month. No trailing padding.
    """
    if not _valid_year_month(year, month):
        return []

    first = date(year, month, 1)
    leading = (first.weekday() + 1) % 7   # Mon=0..Sun=6 -> Sun=0..Sat=6
    last_day = calendar.monthrange(year, month)[1]

    cells: list[Optional[date]] = [None] * leading
    cells.extend(date(year, month, d) for d in range(1, last_day + 1))
    return cells


def shift_month(current: Any, direction: str) -> Any:
    """
    Move one calendar month, clamping day-of-month to the target month's
    last day (Jan 31 -> Feb 28/29). Bad input returns current unchanged.
    """
    if not isinstance(current, date):
        return current

    if direction in PREVIOUS:
        step = -1
    elif direction in NEXT:
        step = 1
    else:
        return current

    months = current.year * 12 + (current.month - 1) + step
    year, month0 = divmod(months, 12)
    if not 1 <= year <= 9999:
        return current

    day = min(current.day, calendar.monthrange(year, month0 + 1)[1])
    return current.replace(year=year, month=month0 + 1, day=day)
