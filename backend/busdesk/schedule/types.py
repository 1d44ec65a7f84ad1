from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

KNOWN_STATUSES = ("scheduled", "in-progress", "completed", "cancelled", "delayed", "active")
DEFAULT_STATUS = "scheduled"
UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class FlatRef:
    value: str                       # plain id / name string


@dataclass(frozen=True)
class NestedRef:
    name: str                        # route.name or bus.busNumber


RefValue = Union[FlatRef, NestedRef]


@dataclass(frozen=True)
class CanonicalSchedule:
    id: str
    calendar_date: date              # local day, no time component

    departure: datetime              # aware
    arrival: datetime                # aware, strictly after departure

    route_label: str
    bus_label: str
    status: str
    passenger_count: int

    frequency: Optional[str] = None

    def to_raw(self) -> dict:
        """
        Re-express as backend-shaped fields; normalizing the result yields an equal schedule.
        """
        raw = {
            "id": self.id,
            "date": self.calendar_date.isoformat(),
            "departureTime": self.departure.isoformat(),
            "arrivalTime": self.arrival.isoformat(),
            "route": {"name": self.route_label},
            "bus": {"busNumber": self.bus_label},
            "status": self.status,
            "passengerCount": self.passenger_count,
        }
        if self.frequency is not None:
            raw["frequency"] = self.frequency
        return raw


@dataclass
class NormalizeReport:
    total: int = 0
    accepted: int = 0
    rejected: int = 0
    synthesized_ids: int = 0
    reasons: Counter = field(default_factory=Counter)

    @property
    def all_invalid(self) -> bool:
        return self.total > 0 and self.accepted == 0

    def reject(self, reason: str) -> None:
        self.rejected += 1
        self.reasons[reason] += 1

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "synthesized_ids": self.synthesized_ids,
            "reasons": dict(self.reasons),
        }


@dataclass(frozen=True)
class NormalizeResult:
    schedules: list[CanonicalSchedule]
    report: NormalizeReport
