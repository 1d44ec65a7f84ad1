import logging
from typing import Any, Optional

import httpx

from busdesk.core.config import AppConfig

from .http import request_with_retry
from .schemas import CreateScheduleData, ScheduleListResponse, ScheduleQuery, UpdateScheduleData

logger = logging.getLogger(__name__)


def _as_list(x: Any) -> list:
    if x is None:
        return []
    if isinstance(x, dict) and isinstance(x.get("schedules"), list):
        return x["schedules"]
    return x if isinstance(x, list) else [x]


class ScheduleService:
    """
    Typed wrapper over the backend's /schedule endpoints. Returns raw records;
    callers normalize.
    """

    def __init__(self, cfg: AppConfig, client: httpx.Client):
        self.cfg = cfg
        self.client = client

    def list_schedules(self, query: Optional[ScheduleQuery] = None) -> ScheduleListResponse:
        params = query.to_wire() if query else None
        body = request_with_retry(self.cfg, self.client, "GET", "/schedule", params=params or None)
        resp = ScheduleListResponse.model_validate(body)
        logger.info("GET /schedule returned %d records (total=%d page=%d/%d)", len(resp.schedules), resp.total, resp.page, resp.pages)
        return resp

    def get_schedule(self, schedule_id: str) -> dict:
        return request_with_retry(self.cfg, self.client, "GET", f"/schedule/{schedule_id}")

    def create_schedule(self, data: CreateScheduleData) -> dict:
        # not idempotent: single attempt
        return request_with_retry(self.cfg, self.client, "POST", "/schedule", json=data.to_wire(), attempts=1)

    def update_schedule(self, schedule_id: str, data: UpdateScheduleData) -> dict:
        return request_with_retry(self.cfg, self.client, "PUT", f"/schedule/{schedule_id}", json=data.to_wire())

    def delete_schedule(self, schedule_id: str) -> None:
        request_with_retry(self.cfg, self.client, "DELETE", f"/schedule/{schedule_id}")

    def update_status(self, schedule_id: str, status: str) -> dict:
        return request_with_retry(
            self.cfg, self.client, "PUT", f"/schedule/{schedule_id}/status", json={"status": status}
        )

    def schedules_by_route(self, route_id: str, date: Optional[str] = None) -> list:
        params = {"date": date} if date else None
        return _as_list(request_with_retry(self.cfg, self.client, "GET", f"/schedule/route/{route_id}", params=params))

    def schedules_by_bus(self, bus_id: str, date: Optional[str] = None) -> list:
        params = {"date": date} if date else None
        return _as_list(request_with_retry(self.cfg, self.client, "GET", f"/schedule/bus/{bus_id}", params=params))
