"""
Tests for reservation endpoints.
"""
import uuid

from fastapi.testclient import TestClient

START = "2030-01-07T15:00:00Z"
END = "2030-01-07T16:00:00Z"


class TestCreateReservation:
    """Tests for POST /api/reservations."""

    def test_book_seats(self, client: TestClient, venue, bar_seat_ids):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": START,
            "end_at": END,
            "seat_ids": [str(s) for s in bar_seat_ids],
        })

        assert response.status_code == 201
        data = response.json()
        assert data["total"] == 2
        assert {r["seat_id"] for r in data["reservations"]} == {str(s) for s in bar_seat_ids}
        assert data["reservations"][0]["status"] == "active"

    def test_double_booking_returns_409(self, client: TestClient, venue, bar_seat_ids):
        payload = {
            "venue_id": str(venue.id),
            "start_at": START,
            "end_at": END,
            "seat_ids": [str(bar_seat_ids[0])],
        }
        assert client.post("/api/reservations", json=payload).status_code == 201

        response = client.post("/api/reservations", json=payload)

        assert response.status_code == 409
        assert response.json() == {
            "error": "One or more seats are not available for that time.",
            "code": "CONFLICT",
        }

    def test_book_group_table(self, client: TestClient, venue, group_table):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": START,
            "end_at": END,
            "table_id": str(group_table.id),
            "seat_count": 4,
        })

        assert response.status_code == 201
        reservation = response.json()["reservations"][0]
        assert reservation["seat_id"] is None
        assert reservation["seat_count"] == 4

    def test_end_before_start_returns_400(self, client: TestClient, venue, bar_seat_ids):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": END,
            "end_at": START,
            "seat_ids": [str(bar_seat_ids[0])],
        })

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    def test_nothing_to_book_returns_400(self, client: TestClient, venue):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": START,
            "end_at": END,
            "seat_count": 2,
        })

        assert response.status_code == 400

    def test_paused_venue_returns_403(self, client: TestClient, db, venue, bar_seat_ids):
        venue.status = "PAUSED"
        venue.pause_message = "Back next week"
        db.commit()

        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": START,
            "end_at": END,
            "seat_ids": [str(bar_seat_ids[0])],
        })

        assert response.status_code == 403
        assert response.json()["error"] == "Back next week"

    def test_past_time_returns_400(self, client: TestClient, venue, bar_seat_ids):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": "2020-01-06T15:00:00Z",
            "end_at": "2020-01-06T16:00:00Z",
            "seat_ids": [str(bar_seat_ids[0])],
        })

        assert response.status_code == 400
        assert response.json()["code"] == "PAST_TIME"

    def test_unknown_venue_returns_404(self, client: TestClient):
        response = client.post("/api/reservations", json={
            "venue_id": str(uuid.uuid4()),
            "start_at": START,
            "end_at": END,
            "seat_ids": [str(uuid.uuid4())],
        })

        assert response.status_code == 404


class TestCancelAndReschedule:
    """Tests for cancelling, listing and moving reservations."""

    def _book(self, client, venue, seat_id, start=START, end=END):
        response = client.post("/api/reservations", json={
            "venue_id": str(venue.id),
            "start_at": start,
            "end_at": end,
            "seat_ids": [str(seat_id)],
        })
        assert response.status_code == 201
        return response.json()["reservations"][0]

    def test_cancel_keeps_row(self, client: TestClient, venue, bar_seat_ids):
        reservation = self._book(client, venue, bar_seat_ids[0])

        response = client.patch(f"/api/reservations/{reservation['id']}", json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        listed = client.get(f"/api/venues/{venue.id}/reservations", params={"include_cancelled": True}).json()
        assert listed["total"] == 1
        active = client.get(f"/api/venues/{venue.id}/reservations").json()
        assert active["total"] == 0

    def test_only_cancel_is_allowed(self, client: TestClient, venue, bar_seat_ids):
        reservation = self._book(client, venue, bar_seat_ids[0])

        response = client.patch(f"/api/reservations/{reservation['id']}", json={"status": "active"})

        assert response.status_code == 422

    def test_cancel_unknown_returns_404(self, client: TestClient):
        response = client.patch(f"/api/reservations/{uuid.uuid4()}", json={"status": "cancelled"})
        assert response.status_code == 404

    def test_reschedule(self, client: TestClient, venue, bar_seat_ids):
        reservation = self._book(client, venue, bar_seat_ids[0])

        response = client.patch(
            f"/api/venues/{venue.id}/reservations/{reservation['id']}",
            json={"start_at": "2030-01-07T15:30:00Z", "end_at": "2030-01-07T16:30:00Z"},
        )

        assert response.status_code == 200
        assert response.json()["start_at"].startswith("2030-01-07T15:30:00")

    def test_reschedule_into_conflict(self, client: TestClient, venue, bar_seat_ids):
        first = self._book(client, venue, bar_seat_ids[0])
        self._book(client, venue, bar_seat_ids[1])

        response = client.patch(
            f"/api/venues/{venue.id}/reservations/{first['id']}",
            json={"start_at": START, "end_at": END, "seat_id": str(bar_seat_ids[1])},
        )

        assert response.status_code == 409

    def test_list_window(self, client: TestClient, venue, bar_seat_ids):
        self._book(client, venue, bar_seat_ids[0])
        self._book(client, venue, bar_seat_ids[0], "2030-01-08T15:00:00Z", "2030-01-08T16:00:00Z")

        response = client.get(f"/api/venues/{venue.id}/reservations", params={
            "start_at": "2030-01-07T00:00:00Z",
            "end_at": "2030-01-08T00:00:00Z",
        })

        assert response.json()["total"] == 1
