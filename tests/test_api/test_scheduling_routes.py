"""Tests for the scheduling API endpoints."""

import logging

import pytest
from fastapi.testclient import TestClient

from practice_os.api.app import create_app
from practice_os.scheduling.service import SchedulingService


@pytest.fixture
def client(service: SchedulingService):
    return TestClient(create_app(service))


class TestSlotsEndpoint:
    def test_lists_grid(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/slots",
            params={"date": "2026-03-02", "duration_minutes": 30, "granularity_minutes": 30},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 18
        assert data[0]["interval"] == {"date": "2026-03-02", "start_minute": 480, "end_minute": 510}
        blocked = [s for s in data if not s["bookable"]]
        assert [s["interval"]["start_minute"] for s in blocked] == [720, 750]

    def test_bookable_only(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/slots",
            params={
                "date": "2026-03-02",
                "duration_minutes": 30,
                "granularity_minutes": 30,
                "bookable_only": True,
            },
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 16

    def test_soft_warnings_serialized(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/slots",
            params={"date": "2026-03-02", "duration_minutes": 30, "granularity_minutes": 30},
        )
        slot = next(s for s in resp.json() if s["interval"]["start_minute"] == 690)
        assert slot["bookable"] is True
        assert slot["soft_warnings"] == [
            {
                "with_appointment_id": "lunch-meeting",
                "kind": "back_to_back",
                "severity": "medium",
                "gap_minutes": 0,
            }
        ]

    def test_invalid_duration_is_422(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/slots",
            params={"date": "2026-03-02", "duration_minutes": 0},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidRequestError"

    def test_unknown_provider_has_no_slots(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/nobody/slots",
            params={"date": "2026-03-02", "duration_minutes": 30},
        )
        assert resp.status_code == 200
        assert resp.json() == []


class TestConflictsEndpoint:
    def test_overlap(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/conflicts",
            json={"date": "2026-03-02", "start_time": "12:30", "duration_minutes": 30},
        )
        assert resp.status_code == 200
        assert resp.json()[0]["kind"] == "overlap"
        assert resp.json()[0]["severity"] == "high"

    def test_safe(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/conflicts",
            json={"date": "2026-03-02", "start_time": "09:00", "duration_minutes": 30},
        )
        assert resp.status_code == 200
        assert resp.json() == []

    def test_exclude_self_when_editing(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/conflicts",
            json={
                "date": "2026-03-02",
                "start_time": "12:15",
                "duration_minutes": 60,
                "exclude_appointment_id": "lunch-meeting",
            },
        )
        assert resp.json() == []

    def test_interval_crossing_midnight_is_422(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/conflicts",
            json={"date": "2026-03-02", "start_time": "23:30", "duration_minutes": 60},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidIntervalError"

    def test_bad_clock_time_is_422(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/conflicts",
            json={"date": "2026-03-02", "start_time": "noon", "duration_minutes": 30},
        )
        assert resp.status_code == 422


class TestScoreEndpoint:
    def test_score(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/score", params={"date": "2026-03-02"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["utilization_percent"] == pytest.approx(100 * 60 / 540)
        assert data["conflict_count"] == 0
        assert any("utilization below" in r for r in data["recommendations"])


class TestBookingEndpoints:
    def test_book_and_see_slot_disappear(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/appointments",
            json={"id": "appt-9", "date": "2026-03-02", "start_time": "09:00", "duration_minutes": 30},
        )
        assert resp.status_code == 201
        assert resp.json()["appointment"]["id"] == "appt-9"
        assert resp.json()["appointment"]["status"] == "pending"

        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/slots",
            params={"date": "2026-03-02", "duration_minutes": 30, "granularity_minutes": 30},
        )
        nine = next(s for s in resp.json() if s["interval"]["start_minute"] == 540)
        assert nine["bookable"] is False

    def test_generated_id(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/appointments",
            json={"date": "2026-03-02", "start_time": "15:00", "duration_minutes": 45},
        )
        assert resp.status_code == 201
        assert resp.json()["appointment"]["id"]

    def test_overlap_is_409(self, client):
        resp = client.post(
            "/api/v1/scheduling/providers/prov-1/appointments",
            json={"date": "2026-03-02", "start_time": "12:30", "duration_minutes": 30},
        )
        assert resp.status_code == 409
        data = resp.json()
        assert data["error"] == "BookingRejectedError"
        assert data["retryable"] is False
        assert data["conflicts"][0]["with_appointment_id"] == "lunch-meeting"
        assert [s["interval"]["start_minute"] for s in data["alternatives"]] == [780, 795, 690]
        assert all(s["bookable"] for s in data["alternatives"])

    def test_set_schedule(self, client):
        resp = client.put(
            "/api/v1/scheduling/providers/prov-2/schedule",
            json={
                "date": "2026-03-02",
                "working_windows": [
                    {"start_time": "13:00", "end_time": "14:00"},
                    {"start_time": "08:00", "end_time": "09:00"},
                ],
            },
        )
        assert resp.status_code == 200

        resp = client.get(
            "/api/v1/scheduling/providers/prov-2/slots",
            params={"date": "2026-03-02", "duration_minutes": 60},
        )
        starts = [s["interval"]["start_minute"] for s in resp.json()]
        assert starts == [480, 780]

    def test_overlapping_windows_are_422(self, client):
        resp = client.put(
            "/api/v1/scheduling/providers/prov-2/schedule",
            json={
                "date": "2026-03-02",
                "working_windows": [
                    {"start_time": "08:00", "end_time": "12:00"},
                    {"start_time": "11:00", "end_time": "13:00"},
                ],
            },
        )
        assert resp.status_code == 422


class TestAlternativesEndpoint:
    def test_nearest_open_times(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/alternatives",
            params={
                "date": "2026-03-02",
                "start_time": "12:30",
                "duration_minutes": 30,
                "limit": 2,
            },
        )
        assert resp.status_code == 200
        assert [s["interval"]["start_minute"] for s in resp.json()] == [780, 795]

    def test_non_positive_limit_is_422(self, client):
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/alternatives",
            params={
                "date": "2026-03-02",
                "start_time": "12:30",
                "duration_minutes": 30,
                "limit": 0,
            },
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "InvalidRequestError"


class TestRequestLogging:
    def test_log_lines_name_provider_and_date(self, client, caplog):
        caplog.set_level(logging.INFO, logger="practice_os.api.middleware")
        resp = client.get(
            "/api/v1/scheduling/providers/prov-1/score",
            params={"date": "2026-03-02"},
        )
        assert resp.status_code == 200
        assert "X-Process-Time" in resp.headers
        messages = [r.getMessage() for r in caplog.records if r.name == "practice_os.api.middleware"]
        assert any("provider=prov-1 date=2026-03-02" in m for m in messages)

    def test_conflict_response_logged_as_warning(self, client, caplog):
        caplog.set_level(logging.INFO, logger="practice_os.api.middleware")
        client.post(
            "/api/v1/scheduling/providers/prov-1/appointments",
            json={"date": "2026-03-02", "start_time": "12:30", "duration_minutes": 30},
        )
        responses = [
            r for r in caplog.records
            if r.name == "practice_os.api.middleware" and r.getMessage().startswith("Response:")
        ]
        assert responses[-1].levelno == logging.WARNING
        assert "status=409" in responses[-1].getMessage()
