from datetime import date, datetime, tzinfo
from typing import Optional

from busdesk.schedule.utils.time import to_local

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

STATUS_STYLES = {
    "scheduled": "blue",
    "in-progress": "yellow",
    "completed": "green",
    "cancelled": "red",
}
NEUTRAL_STYLE = "gray"


def format_clock(instant: datetime, tz: Optional[tzinfo] = None) -> str:
    # 12-hour with zero-padded hour: "09:05 AM"
    return to_local(instant, tz).strftime("%I:%M %p")


def format_duration(departure: datetime, arrival: datetime) -> str:
    minutes = int((arrival - departure).total_seconds() // 60)
    if minutes < 0:
        return ""
    return f"{minutes // 60}h {minutes % 60}m"


def status_style(status: Optional[str]) -> str:
    """
    Badge colour; anything unrecognised (e.g. "delayed", "active", typos) is neutral.
    """
    return STATUS_STYLES.get((status or "").strip().lower(), NEUTRAL_STYLE)


def status_label(status: Optional[str]) -> str:
    s = (status or "").strip()
    return s[:1].upper() + s[1:]


def month_title(d: date) -> str:
    return f"{MONTH_NAMES[d.month - 1]} {d.year}"
