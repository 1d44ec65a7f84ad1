import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, tzinfo
from typing import Any, Optional

from busdesk.schedule.types import (
    DEFAULT_STATUS,
    UNKNOWN_LABEL,
    CanonicalSchedule,
    FlatRef,
    NestedRef,
    NormalizeReport,
    NormalizeResult,
    RefValue,
)
from busdesk.schedule.utils.time import local_date, parse_instant

logger = logging.getLogger(__name__)


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_ref(value: Any, name_key: str) -> Optional[RefValue]:
    if isinstance(value, Mapping):
        name = _clean_str(value.get(name_key))
        return NestedRef(name) if name else None
    flat = _clean_str(value)
    return FlatRef(flat) if flat else None


def resolve_label(*refs: Optional[RefValue]) -> str:
    for ref in refs:
        if isinstance(ref, NestedRef):
            return ref.name
        if isinstance(ref, FlatRef):
            return ref.value
    return UNKNOWN_LABEL


def passenger_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, int(value))


def _calendar_date(raw: Mapping, departure, tz: Optional[tzinfo]) -> Optional[date]:
    explicit = parse_instant(raw.get("date"), tz)
    try:
        if explicit is not None:
            return local_date(explicit, tz)
        return local_date(departure, tz)
    except (OverflowError, OSError, ValueError):
        return None


def _check_record(
    raw: Any,
    index: int,
    tz: Optional[tzinfo],
    require_id: bool,
) -> tuple[Optional[CanonicalSchedule], Optional[str]]:
    """
    Returns (schedule, None) on success or (None, reason) on rejection.
    """
    if not isinstance(raw, Mapping):
        return None, "not_a_mapping"

    if _is_missing(raw.get("departureTime")) or _is_missing(raw.get("arrivalTime")):
        return None, "missing_times"

    departure = parse_instant(raw.get("departureTime"), tz)
    if departure is None:
        return None, "bad_departure"

    arrival = parse_instant(raw.get("arrivalTime"), tz)
    if arrival is None:
        return None, "bad_arrival"

    cal_date = _calendar_date(raw, departure, tz)
    if cal_date is None:
        return None, "bad_date"

    if arrival <= departure:
        return None, "not_after_departure"

    schedule_id = _clean_str(raw.get("id")) or _clean_str(raw.get("_id"))
    if schedule_id is None:
        if require_id:
            return None, "missing_id"
        schedule_id = f"temp-{index}"

    route_label = resolve_label(parse_ref(raw.get("route"), "name"), parse_ref(raw.get("routeId"), "name"))
    bus_label = resolve_label(parse_ref(raw.get("bus"), "busNumber"), parse_ref(raw.get("busId"), "busNumber"))

    return (
        CanonicalSchedule(
            id=schedule_id,
            calendar_date=cal_date,
            departure=departure,
            arrival=arrival,
            route_label=route_label,
            bus_label=bus_label,
            status=_clean_str(raw.get("status")) or DEFAULT_STATUS,
            passenger_count=passenger_count(raw.get("passengerCount")),
            frequency=_clean_str(raw.get("frequency")),
        ),
        None,
    )


def normalize_record(raw: Any, index: int = 0, tz: Optional[tzinfo] = None) -> Optional[CanonicalSchedule]:
    schedule, _ = _check_record(raw, index, tz, require_id=False)
    return schedule


def normalize(
    raw_records: Optional[Iterable[Any]],
    tz: Optional[tzinfo] = None,
    *,
    require_id: bool = False,
) -> NormalizeResult:
    """
    Validate and canonicalize backend schedule records.

    Each record is judged on its own; a bad record is counted in the report
    and dropped, never raised. Output keeps input order.
    """
    report = NormalizeReport()
    schedules: list[CanonicalSchedule] = []

    for index, raw in enumerate(raw_records or []):
        report.total += 1
        schedule, reason = _check_record(raw, index, tz, require_id)

        if schedule is None:
            report.reject(reason or "invalid")
            logger.debug("Schedule %d skipped: %s", index, reason)
            continue

        if _clean_str(raw.get("id")) is None and _clean_str(raw.get("_id")) is None:
            report.synthesized_ids += 1

        schedules.append(schedule)
        report.accepted += 1

    return NormalizeResult(schedules=schedules, report=report)
