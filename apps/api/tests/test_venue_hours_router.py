"""
Tests for venue hours and open-status endpoints.
"""
import logging
import uuid

import httpx
from fastapi.testclient import TestClient

from src.main import app
from src.routers.venue_hours import get_google_client
from src.services.google_places import GooglePlacesClient


class TestGetHours:
    """Tests for GET /api/venues/{id}/hours."""

    def test_returns_full_week(self, client: TestClient, venue):
        response = client.get(f"/api/venues/{venue.id}/hours")

        assert response.status_code == 200
        data = response.json()
        assert data["timezone"] == "America/New_York"
        assert data["hours_source"] == "google"
        assert len(data["schedule"]) == 7
        assert data["schedule"][0]["day_name"] == "Sunday"
        assert data["formatted"][1] == "Mon: 12:00 AM – 11:59 PM"

    def test_unknown_venue(self, client: TestClient):
        response = client.get(f"/api/venues/{uuid.uuid4()}/hours")
        assert response.status_code == 404


class TestUpdateHours:
    """Tests for PUT /api/venues/{id}/hours."""

    def test_manual_hours_replace_google(self, client: TestClient, venue):
        response = client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 1, "open_time": "10:00", "close_time": "14:00", "is_closed": False},
            {"day_of_week": 2, "is_closed": True},
        ]})

        assert response.status_code == 200
        data = response.json()
        assert data["hours_source"] == "manual"
        monday = data["schedule"][1]
        assert monday["open_time"] == "10:00"
        assert monday["source"] == "manual"
        # Days without manual rows are closed, not filled from Google
        assert data["schedule"][3]["is_closed"] is True
        assert data["formatted"][3] == "Wed: Closed"

    def test_invalid_time(self, client: TestClient, venue):
        response = client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 1, "open_time": "25:00", "close_time": "14:00", "is_closed": False},
        ]})
        assert response.status_code == 400

    def test_close_before_open(self, client: TestClient, venue):
        response = client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 1, "open_time": "14:00", "close_time": "10:00", "is_closed": False},
        ]})
        assert response.status_code == 400

    def test_invalid_day(self, client: TestClient, venue):
        response = client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 7, "is_closed": True},
        ]})
        assert response.status_code == 422


class TestSyncGoogle:
    """Tests for POST /api/venues/{id}/hours/sync-google."""

    PERIODS = [
        {"open": {"day": day, "hour": 8, "minute": 0}, "close": {"day": day, "hour": 20, "minute": 0}}
        for day in range(7)
    ]

    def test_sync_with_supplied_periods_keeps_manual_days(self, client: TestClient, venue):
        client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 1, "open_time": "10:00", "close_time": "14:00", "is_closed": False},
        ]})

        response = client.post(f"/api/venues/{venue.id}/hours/sync-google", json={"periods": self.PERIODS})

        assert response.status_code == 200
        assert 1 not in response.json()["updated_days"]
        hours = client.get(f"/api/venues/{venue.id}/hours").json()
        assert hours["schedule"][1]["open_time"] == "10:00"

    def test_sync_fetches_from_google(self, client: TestClient, db, venue):
        venue.google_place_id = "places/abc"
        db.commit()

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["X-Goog-FieldMask"] == "regularOpeningHours"
            return httpx.Response(200, json={"regularOpeningHours": {"periods": self.PERIODS}})

        app.dependency_overrides[get_google_client] = lambda: GooglePlacesClient(
            api_key="test-key", transport=httpx.MockTransport(handler)
        )

        response = client.post(f"/api/venues/{venue.id}/hours/sync-google")

        assert response.status_code == 200
        assert sorted(response.json()["updated_days"]) == list(range(7))
        hours = client.get(f"/api/venues/{venue.id}/hours").json()
        assert hours["schedule"][2]["open_time"] == "08:00"

    def test_sync_google_failure_is_logged(self, client: TestClient, db, venue, caplog):
        venue.google_place_id = "places/abc"
        db.commit()
        app.dependency_overrides[get_google_client] = lambda: GooglePlacesClient(
            api_key="test-key",
            transport=httpx.MockTransport(lambda request: httpx.Response(503, text="unavailable")),
        )

        with caplog.at_level(logging.WARNING, logger="src.routers.venue_hours"):
            response = client.post(f"/api/venues/{venue.id}/hours/sync-google")

        assert response.status_code == 502
        assert any(
            record.levelno == logging.WARNING and "Google hours sync failed" in record.getMessage()
            for record in caplog.records
        )

    def test_sync_without_place_id(self, client: TestClient, venue):
        response = client.post(f"/api/venues/{venue.id}/hours/sync-google")
        assert response.status_code == 400


class TestOpenStatus:
    """Tests for GET /api/venues/{id}/open-status."""

    def test_at_instant(self, client: TestClient, venue):
        client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": day, "open_time": "09:00", "close_time": "17:00", "is_closed": False}
            for day in range(1, 6)
        ]})

        # Monday 2025-02-03 08:00 New York
        response = client.get(f"/api/venues/{venue.id}/open-status", params={"at": "2025-02-03T13:00:00Z"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OPENS_LATER"
        assert data["is_open"] is False
        assert data["today_label"] == "Mon"
        assert data["today_hours_text"] == "9:00 AM – 5:00 PM"
        assert data["next_open_at"].startswith("2025-02-03T14:00:00")
