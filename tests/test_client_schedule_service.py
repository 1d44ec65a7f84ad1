import json
import unittest
from unittest import mock

import httpx
from pydantic import ValidationError
from schedule_fakes import make_config, raw_schedule

from busdesk.client.http import describe_error, make_client, mask_bearer
from busdesk.client.schedule_service import ScheduleService
from busdesk.client.schemas import CreateScheduleData, ScheduleListResponse, ScheduleQuery, UpdateScheduleData


class RecordingTransport:
    """Replays queued (status, body) pairs and keeps every request."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)


class ScheduleServiceTestCase(unittest.TestCase):
    def make_service(self, *replies, **cfg_overrides):
        self.cfg = make_config(**cfg_overrides)
        self.transport = RecordingTransport(*replies)
        self.client = make_client(self.cfg, transport=httpx.MockTransport(self.transport))
        self.addCleanup(self.client.close)
        return ScheduleService(self.cfg, self.client)


class TestListSchedules(ScheduleServiceTestCase):
    def test_query_uses_wire_names_and_bearer_token(self) -> None:
        body = {"schedules": [raw_schedule()], "total": 1, "page": 2, "pages": 3}
        service = self.make_service((200, body))

        resp = service.list_schedules(ScheduleQuery(route_id="r1", status="scheduled", page=2))

        req = self.transport.requests[0]
        self.assertEqual(req.method, "GET")
        self.assertEqual(req.url.path, "/api/schedule")
        self.assertEqual(dict(req.url.params), {"routeId": "r1", "status": "scheduled", "page": "2"})
        self.assertEqual(req.headers["authorization"], "Bearer secret-token-1234")
        self.assertEqual(len(resp.schedules), 1)
        self.assertEqual((resp.total, resp.page, resp.pages), (1, 2, 3))

    def test_no_query_sends_no_params_and_no_token_when_unset(self) -> None:
        service = self.make_service((200, {"schedules": []}), api_token=None)
        service.list_schedules()

        req = self.transport.requests[0]
        self.assertEqual(str(req.url), "http://backend.test/api/schedule")
        self.assertNotIn("authorization", req.headers)

    def test_loose_response_shapes(self) -> None:
        self.assertEqual(ScheduleListResponse.model_validate({"total": 0}).schedules, [])
        self.assertEqual(ScheduleListResponse.model_validate({"schedules": None}).schedules, [])
        self.assertEqual(ScheduleListResponse.model_validate(None).schedules, [])
        bare = ScheduleListResponse.model_validate([raw_schedule(), {"junk": True}])
        self.assertEqual((len(bare.schedules), bare.total), (2, 2))

    def test_null_paging_metadata_uses_defaults(self) -> None:
        resp = ScheduleListResponse.model_validate(
            {"schedules": [raw_schedule()], "total": None, "page": None, "pages": None}
        )
        self.assertEqual(len(resp.schedules), 1)
        self.assertEqual((resp.total, resp.page, resp.pages), (0, 1, 1))

    def test_null_paging_metadata_over_http(self) -> None:
        service = self.make_service((200, {"schedules": [raw_schedule()], "total": None, "pages": None}))
        resp = service.list_schedules()
        self.assertEqual(len(resp.schedules), 1)

    def test_retryable_status_is_retried(self) -> None:
        service = self.make_service((503, {"message": "busy"}), (200, {"schedules": [raw_schedule()]}))
        with mock.patch("busdesk.client.http.sleep_backoff") as sleep:
            resp = service.list_schedules()

        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(sleep.call_count, 1)
        self.assertEqual(len(resp.schedules), 1)

    def test_retries_exhausted_raise_last_error(self) -> None:
        service = self.make_service((503, {"message": "busy"}), retries=2)
        with mock.patch("busdesk.client.http.sleep_backoff") as sleep:
            with self.assertRaises(httpx.HTTPStatusError):
                service.list_schedules()

        self.assertEqual(len(self.transport.requests), 2)
        self.assertEqual(sleep.call_count, 1)

    def test_non_retryable_status_raises_immediately(self) -> None:
        service = self.make_service((401, {"message": "Token expired"}))
        with mock.patch("busdesk.client.http.sleep_backoff") as sleep:
            with self.assertRaises(httpx.HTTPStatusError) as ctx:
                service.list_schedules()

        self.assertEqual(len(self.transport.requests), 1)
        sleep.assert_not_called()
        self.assertEqual(describe_error(ctx.exception), "Token expired")


class TestScheduleMutations(ScheduleServiceTestCase):
    def test_create_posts_camel_case_payload_once(self) -> None:
        created = raw_schedule(id="new-1")
        service = self.make_service((201, created))
        data = CreateScheduleData(
            route_id="Campus Loop", bus_id="UEM-01", date="2025-10-05",
            departure_time="09:00", arrival_time="10:30",
        )

        self.assertEqual(service.create_schedule(data), created)

        req = self.transport.requests[0]
        self.assertEqual(req.method, "POST")
        self.assertEqual(json.loads(req.content), {
            "routeId": "Campus Loop",
            "busId": "UEM-01",
            "date": "2025-10-05",
            "departureTime": "09:00",
            "arrivalTime": "10:30",
            "frequency": "once",
            "status": "scheduled",
        })

    def test_create_is_not_retried(self) -> None:
        service = self.make_service((503, None))
        data = CreateScheduleData(routeId="r", busId="b", date="2025-10-05", departureTime="09:00", arrivalTime="10:00")
        with mock.patch("busdesk.client.http.sleep_backoff") as sleep:
            with self.assertRaises(httpx.HTTPStatusError):
                service.create_schedule(data)

        self.assertEqual(len(self.transport.requests), 1)
        sleep.assert_not_called()

    def test_create_rejects_arrival_before_departure(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            CreateScheduleData(routeId="r", busId="b", date="2025-10-05", departureTime="10:00", arrivalTime="10:00")
        self.assertIn("Arrival time must be after departure time", str(ctx.exception))

    def test_create_orders_iso_times_by_instant(self) -> None:
        # 09:00+05:30 is 03:30Z, half an hour before the arrival
        data = CreateScheduleData(routeId="r", busId="b", date="2025-10-05",
                                  departureTime="2025-10-05T09:00:00+05:30", arrivalTime="2025-10-05T04:00:00Z")
        self.assertEqual(data.arrival_time, "2025-10-05T04:00:00Z")

        with self.assertRaises(ValidationError) as ctx:
            CreateScheduleData(routeId="r", busId="b", date="2025-10-05",
                               departureTime="2025-10-05T03:30:00Z", arrivalTime="2025-10-05T09:00:00+05:30")
        self.assertIn("Arrival time must be after departure time", str(ctx.exception))

    def test_create_accepts_unpadded_clock_times(self) -> None:
        data = CreateScheduleData(routeId="r", busId="b", date="2025-10-05", departureTime="9:00", arrivalTime="10:00")
        self.assertEqual(data.to_wire()["departureTime"], "9:00")

        with self.assertRaises(ValidationError):
            CreateScheduleData(routeId="r", busId="b", date="2025-10-05", departureTime="10:00", arrivalTime="9:30")

    def test_create_rejects_unreadable_times(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            CreateScheduleData(routeId="r", busId="b", date="2025-10-05", departureTime="soon", arrivalTime="10:00")
        self.assertIn("Departure and arrival must be HH:MM or ISO datetimes", str(ctx.exception))

    def test_update_status_and_delete(self) -> None:
        service = self.make_service((200, {"id": "s-1", "status": "completed"}), (204, None))

        self.assertEqual(service.update_status("s-1", "completed")["status"], "completed")
        self.assertIsNone(service.delete_schedule("s-1"))

        put, delete = self.transport.requests
        self.assertEqual((put.method, put.url.path), ("PUT", "/api/schedule/s-1/status"))
        self.assertEqual(json.loads(put.content), {"status": "completed"})
        self.assertEqual((delete.method, delete.url.path), ("DELETE", "/api/schedule/s-1"))

    def test_get_schedule_by_id(self) -> None:
        service = self.make_service((200, raw_schedule(id="s-7")))
        self.assertEqual(service.get_schedule("s-7")["id"], "s-7")
        self.assertEqual(self.transport.requests[0].url.path, "/api/schedule/s-7")

    def test_update_sends_only_set_fields(self) -> None:
        service = self.make_service((200, {"id": "s-1"}))
        service.update_schedule("s-1", UpdateScheduleData(passenger_count=31, actual_arrival_time="10:41"))

        self.assertEqual(
            json.loads(self.transport.requests[0].content),
            {"passengerCount": 31, "actualArrivalTime": "10:41"},
        )

    def test_by_route_and_bus(self) -> None:
        service = self.make_service((200, [raw_schedule()]), (200, {"schedules": [raw_schedule(), raw_schedule()]}))

        self.assertEqual(len(service.schedules_by_route("r1", date="2025-10-05")), 1)
        self.assertEqual(len(service.schedules_by_bus("b1")), 2)

        by_route, by_bus = self.transport.requests
        self.assertEqual(by_route.url.path, "/api/schedule/route/r1")
        self.assertEqual(dict(by_route.url.params), {"date": "2025-10-05"})
        self.assertEqual(by_bus.url.path, "/api/schedule/bus/b1")


class TestHttpHelpers(unittest.TestCase):
    def test_mask_bearer(self) -> None:
        self.assertEqual(mask_bearer("Bearer secret-token-1234"), "Bearer ****1234")
        self.assertEqual(mask_bearer("Bearer abc"), "Bearer ****")
        self.assertEqual(mask_bearer("opaque"), "****")
        self.assertIsNone(mask_bearer(None))

    def test_describe_error(self) -> None:
        request = httpx.Request("GET", "http://backend.test/api/schedule")
        plain = httpx.Response(500, text="oops", request=request)
        jsonish = httpx.Response(500, json={"error": "Database offline"}, request=request)

        self.assertEqual(describe_error(httpx.HTTPStatusError("x", request=request, response=plain)), "HTTP 500")
        self.assertEqual(describe_error(httpx.HTTPStatusError("x", request=request, response=jsonish)), "Database offline")
        self.assertEqual(describe_error(httpx.ConnectError("connection refused")), "connection refused")


if __name__ == "__main__":
    unittest.main(verbosity=2)
