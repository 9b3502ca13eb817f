"""RosterApiClient against an in-process httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from roster_service import api_client
from roster_service.api_client import RosterApiClient
from roster_service.config import ApiConfig

CFG = ApiConfig(base_url="https://backend.test", api_key="secret-key")

DOCTOR_ROWS = [
    {"id": "d1", "name": "Dr. Jane Smith", "group_id": 2, "email": "jane@hospital.com", "specialty": "Neurology"},
    {"id": "d2", "name": "Dr. John Doe", "group_id": 1, "email": None, "specialty": None},
]

STATION_ROWS = [
    {"id": "s2", "name": "Weaning", "allowed_groups": [1, 2]},
    {"id": "s1", "name": "Réanimation", "allowed_groups": [1]},
    {"id": "s9", "name": "Closed", "allowed_groups": None},
]


def _client(handler) -> RosterApiClient:
    return RosterApiClient(CFG, transport=httpx.MockTransport(handler))


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr(api_client, "sleep", lambda s: None)


class TestReads:
    def test_fetch_doctors(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=DOCTOR_ROWS)

        doctors = _client(handler).fetch_doctors()

        assert [d.id for d in doctors] == ["d1", "d2"]
        assert doctors[0].group == 2
        assert doctors[0].specialty == "Neurology"
        assert doctors[1].email == ""
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/doctors"
        assert request.url.params["select"] == "id,name,group_id,email,specialty"

    def test_auth_headers(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        _client(handler).fetch_doctors()
        assert seen[0].headers["apikey"] == "secret-key"
        assert seen[0].headers["authorization"] == "Bearer secret-key"

    def test_fetch_stations_keeps_backend_order(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rest/v1/stations"
            return httpx.Response(200, json=STATION_ROWS)

        stations = _client(handler).fetch_stations()
        assert [s.id for s in stations] == ["s2", "s1", "s9"]
        assert stations[0].allowed_groups == frozenset({1, 2})
        assert stations[2].allowed_groups == frozenset()

    def test_bad_group_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": "d1", "name": "X", "group_id": 0}])

        with pytest.raises(ValueError, match="positive"):
            _client(handler).fetch_doctors()


class TestLifecycle:
    def test_context_manager_closes_connection_pool(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=STATION_ROWS)

        with _client(handler) as client:
            assert len(client.fetch_stations()) == 3
            assert not client._http.is_closed
        assert client._http.is_closed


class TestWhitelist:
    def test_unknown_operation_rejected_before_request(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        client = _client(handler)
        with pytest.raises(ValueError, match="not allowed"):
            client._request(operation="delete_shifts")
        assert calls == []


class TestRetries:
    def test_retries_server_errors(self, no_sleep):
        responses = iter([httpx.Response(503), httpx.Response(200, json=DOCTOR_ROWS)])

        def handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        assert len(_client(handler).fetch_doctors()) == 2

    def test_retries_connect_errors_then_raises(self, no_sleep):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            _client(handler).fetch_doctors()
        assert len(attempts) == 3

    def test_client_error_not_retried(self, no_sleep):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(401, json={"message": "bad key"})

        with pytest.raises(httpx.HTTPStatusError):
            _client(handler).fetch_stations()
        assert len(attempts) == 1


class TestWrites:
    PLAN = {
        "plan_id": "plan-abc",
        "range": {"from": "2026-03-02", "to": "2026-03-04"},
        "shifts": [
            {
                "station_id": "s1",
                "doctor_id": "d1",
                "date": f"2026-03-0{i}",
                "start": f"2026-03-0{i}T16:00:00",
                "end": f"2026-03-0{i + 1}T09:00:00",
                "kind": "weekday",
            }
            for i in (2, 3, 4)
        ],
    }

    def test_insert_schedule_returns_id(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/rest/v1/schedules"
            assert request.headers["prefer"] == "return=representation"
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json=[{"id": "sched-1"}])

        assert _client(handler).insert_schedule(self.PLAN) == "sched-1"
        assert bodies == [{"month": 3, "year": 2026}]

    def test_insert_shifts_maps_columns_and_chunks(self, monkeypatch):
        monkeypatch.setattr(api_client, "INSERT_CHUNK_SIZE", 2)
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rest/v1/shifts"
            bodies.append(json.loads(request.content))
            return httpx.Response(201)

        assert _client(handler).insert_shifts(self.PLAN) == 3
        assert [len(b) for b in bodies] == [2, 1]
        assert bodies[0][0] == {
            "station_id": "s1",
            "doctor_id": "d1",
            "date": "2026-03-02",
            "start_time": "2026-03-02T16:00:00",
            "end_time": "2026-03-03T09:00:00",
            "type": "weekday",
        }

    def test_insert_nothing_for_empty_plan(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert _client(handler).insert_shifts({"plan_id": "p", "shifts": []}) == 0
