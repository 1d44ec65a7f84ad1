from __future__ import annotations

from datetime import tzinfo
from typing import Any, Iterable, Optional

from busdesk.schedule.types import CanonicalSchedule
from busdesk.schedule.utils.time import to_local

DEFAULT_SLOT_HOURS: tuple[int, ...] = tuple(range(6, 19))   # 06:00 .. 18:00


def parse_slot_hour(value: Any) -> Optional[int]:
    """
    Slot start as an hour of day. Accepts 14 or "14:00" ("14:30" -> 14); None if invalid.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 23 else None
    if isinstance(value, str):
        head = value.strip().split(":", 1)[0]
        if not head.isdigit():
            return None
        h = int(head)
        return h if 0 <= h <= 23 else None
    return None


def slot_label(hour: int) -> str:
    return f"{hour:02d}:00"


def slot_hours_between(start_hour: int, end_hour: int) -> tuple[int, ...]:
    """Inclusive hourly range, e.g. (6, 18) -> 6..18."""
    return tuple(range(max(0, start_hour), min(23, end_hour) + 1))


def bucketize(
    day_schedules: Iterable[CanonicalSchedule],
    slot_hours: Iterable[Any] = DEFAULT_SLOT_HOURS,
    tz: Optional[tzinfo] = None,
) -> dict[int, list[CanonicalSchedule]]:
    """
    Group schedules by local departure hour into the given slots.

    Minutes are ignored (10:45 -> 10:00 slot). Departures outside every slot
    are left out. Every requested valid hour gets a key, empty or not.
    """
    buckets: dict[int, list[CanonicalSchedule]] = {}
    for raw_hour in slot_hours:
        h = parse_slot_hour(raw_hour)
        if h is not None and h not in buckets:
            buckets[h] = []

    for s in day_schedules:
        hour = to_local(s.departure, tz).hour
        slot = buckets.get(hour)
        if slot is not None:
            slot.append(s)

    return buckets
