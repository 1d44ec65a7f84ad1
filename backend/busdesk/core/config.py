import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AppConfig:
    base_url: str
    api_token: Optional[str]

    connect_timeout: float
    read_timeout: float
    write_timeout: float
    pool_timeout: float

    retries: int
    backoff_base: float

    timezone: Optional[str]   # IANA name; None means the host's local zone
    slot_start_hour: int
    slot_end_hour: int

    log_level: str


def load_config() -> AppConfig:
    start = int(os.getenv("BUSDESK_SLOT_START_HOUR", "6"))
    end = int(os.getenv("BUSDESK_SLOT_END_HOUR", "18"))
    if not (0 <= start <= end <= 23):
        raise RuntimeError(f"BUSDESK_SLOT_START_HOUR/BUSDESK_SLOT_END_HOUR out of range: {start}..{end}")

    return AppConfig(
        base_url=os.getenv("BUSDESK_API_BASE_URL", "http://localhost:5000/api"),
        api_token=os.getenv("BUSDESK_API_TOKEN") or None,
        connect_timeout=float(os.getenv("BUSDESK_CONNECT_TIMEOUT_SECONDS", "5")),
        read_timeout=float(os.getenv("BUSDESK_READ_TIMEOUT_SECONDS", "20")),
        write_timeout=float(os.getenv("BUSDESK_WRITE_TIMEOUT_SECONDS", "20")),
        pool_timeout=float(os.getenv("BUSDESK_POOL_TIMEOUT_SECONDS", "10")),
        retries=int(os.getenv("BUSDESK_RETRIES", "3")),
        backoff_base=float(os.getenv("BUSDESK_BACKOFF_BASE_SECONDS", "0.5")),
        timezone=os.getenv("BUSDESK_TIMEZONE") or None,
        slot_start_hour=start,
        slot_end_hour=end,
        log_level=os.getenv("BUSDESK_LOG_LEVEL", "INFO"),
    )
