"""
Tests for availability endpoints.
"""
from fastapi.testclient import TestClient

START = "2030-01-07T15:00:00Z"
END = "2030-01-07T16:00:00Z"


def book(client: TestClient, venue, **kwargs):
    payload = {"venue_id": str(venue.id), "start_at": START, "end_at": END}
    payload.update(kwargs)
    response = client.post("/api/reservations", json=payload)
    assert response.status_code == 201
    return response.json()


class TestSeatAvailability:
    """Tests for GET /api/venues/{id}/availability."""

    def test_everything_free(self, client: TestClient, venue, group_table):
        response = client.get(f"/api/venues/{venue.id}/availability", params={"start_at": START, "end_at": END})

        assert response.status_code == 200
        data = response.json()
        assert data["capacity"] == 6
        assert len(data["available_seat_ids"]) == 6
        assert data["available_table_ids"] == [str(group_table.id)]
        assert data["venue_blocked"] is False
        assert data["can_book"] is None

    def test_booked_seat_is_unavailable(self, client: TestClient, venue, bar_seat_ids):
        book(client, venue, seat_ids=[str(bar_seat_ids[0])])

        data = client.get(f"/api/venues/{venue.id}/availability", params={"start_at": START, "end_at": END}).json()

        assert data["unavailable_seat_ids"] == [str(bar_seat_ids[0])]
        assert str(bar_seat_ids[1]) in data["available_seat_ids"]

    def test_adjacent_window_is_free(self, client: TestClient, venue, bar_seat_ids):
        book(client, venue, seat_ids=[str(bar_seat_ids[0])])

        data = client.get(f"/api/venues/{venue.id}/availability", params={
            "start_at": END,
            "end_at": "2030-01-07T17:00:00Z",
        }).json()

        assert data["unavailable_seat_ids"] == []

    def test_booked_table_takes_all_its_seats(self, client: TestClient, venue, group_table):
        book(client, venue, table_id=str(group_table.id), seat_count=3)

        data = client.get(f"/api/venues/{venue.id}/availability", params={"start_at": START, "end_at": END}).json()

        assert data["unavailable_table_ids"] == [str(group_table.id)]
        assert len(data["unavailable_seat_ids"]) == 4

    def test_can_book_with_seat_count(self, client: TestClient, venue, group_table):
        book(client, venue, table_id=str(group_table.id), seat_count=4)

        ok = client.get(f"/api/venues/{venue.id}/availability", params={
            "start_at": START, "end_at": END, "seat_count": 2,
        }).json()
        too_many = client.get(f"/api/venues/{venue.id}/availability", params={
            "start_at": START, "end_at": END, "seat_count": 3,
        }).json()

        assert ok["can_book"] is True
        assert too_many["can_book"] is False
        assert too_many["message"]

    def test_end_before_start(self, client: TestClient, venue):
        response = client.get(f"/api/venues/{venue.id}/availability", params={"start_at": END, "end_at": START})
        assert response.status_code == 400


class TestAvailabilityLabel:
    """Tests for GET /api/venues/{id}/availability-label."""

    def test_open_venue(self, client: TestClient, venue):
        response = client.get(f"/api/venues/{venue.id}/availability-label")

        assert response.status_code == 200
        data = response.json()
        assert data["label"] == "Available now"
        assert data["capacity"] == 6
        assert data["is_open"] is True

    def test_no_hours(self, client: TestClient, db, venue):
        venue.hours_source = "manual"
        db.commit()

        data = client.get(f"/api/venues/{venue.id}/availability-label").json()

        assert data["is_open"] is False
        assert data["label"] == "Currently Closed"


class TestSlots:
    """Tests for GET /api/venues/{id}/slots."""

    def test_round_the_clock_day(self, client: TestClient, venue):
        response = client.get(f"/api/venues/{venue.id}/slots", params={"date": "2030-01-07"})

        assert response.status_code == 200
        data = response.json()
        assert data["timezone"] == "America/New_York"
        assert len(data["slots"]) == 96
        assert data["slots"][0].startswith("2030-01-07T05:00:00")

    def test_closed_day(self, client: TestClient, venue):
        client.put(f"/api/venues/{venue.id}/hours", json={"schedule": [
            {"day_of_week": 1, "is_closed": True},
        ]})

        data = client.get(f"/api/venues/{venue.id}/slots", params={"date": "2030-01-07"}).json()

        assert data["slots"] == []
