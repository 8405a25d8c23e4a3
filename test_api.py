#!/usr/bin/env python3
"""
API Testing for Room Rental Marketplace API
Exercises the HTTP surface end to end through FastAPI's TestClient
"""

import pytest
from fastapi.testclient import TestClient
from datetime import datetime, timedelta, timezone
from uuid import uuid4
from unittest.mock import AsyncMock

from main import app
from api.dependencies import get_current_active_user, get_reservation_service
from application.services import ReservationService
from domain.auth import User
from domain.exceptions import BookingConflict
from infrastructure.security import create_access_token


ANCHOR = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=30)


def future(n: int) -> str:
    return (ANCHOR + timedelta(days=n)).isoformat()


def parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def register_and_login(client):
    username = f"user_{uuid4().hex[:10]}"
    response = client.post("/register", json={"username": username, "password": "secret123"})
    assert response.status_code == 201
    user_id = response.json()["user_id"]

    response = client.post("/token", data={"username": username, "password": "secret123"})
    token = response.json()["access_token"]
    return user_id, {"Authorization": f"Bearer {token}"}


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def client():
    """FastAPI test client"""
    return TestClient(app)


@pytest.fixture
def host(client):
    return register_and_login(client)


@pytest.fixture
def guest(client):
    return register_and_login(client)


@pytest.fixture
def location():
    """Unique location so catalog searches only see this test's rooms"""
    return f"Town-{uuid4().hex[:8]}"


@pytest.fixture
def room(client, host, location):
    host_id, headers = host
    payload = {
        "title": "Sunny loft",
        "subtitle": "Near the river",
        "description": "Two windows and a balcony",
        "price": 120,
        "capacity": 2,
        "location": location,
        "room_type": "Apartment"
    }
    response = client.post(f"/users/{host_id}/rooms", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()


def book(client, guest, room_id, a, b):
    guest_id, headers = guest
    return client.post(
        f"/users/{guest_id}/reservations",
        json={"room_id": room_id, "date_start": future(a), "date_end": future(b)},
        headers=headers
    )


# ============================================================================
# AUTH & USERS
# ============================================================================

class TestAuthenticationAPI:
    """Test registration, login and token handling"""

    @pytest.mark.api
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.api
    def test_register_duplicate(self, client):
        username = f"user_{uuid4().hex[:10]}"
        client.post("/register", json={"username": username, "password": "secret123"})
        response = client.post("/register", json={"username": username, "password": "other123"})
        assert response.status_code == 400
        assert response.json() == {
            "status": "failed",
            "error": f"Username {username} is already registered",
            "code": "DUPLICATE_USER"
        }

    @pytest.mark.api
    def test_login_wrong_password(self, client, host):
        response = client.post("/token", data={"username": "nobody", "password": "nothing"})
        assert response.status_code == 401

    @pytest.mark.api
    def test_users_me(self, client, host):
        host_id, headers = host
        response = client.get("/users/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["user_id"] == host_id
        assert "hashed_password" not in response.json()

    @pytest.mark.api
    def test_missing_token(self, client):
        assert client.get("/users/me").status_code == 401

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_token_with_non_uuid_subject(self, client):
        token = create_access_token({"sub": "not-a-uuid"})
        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_token_for_unknown_user(self, client):
        token = create_access_token({"sub": str(uuid4())})
        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.api
    def test_patch_own_profile(self, client, host):
        host_id, headers = host
        response = client.patch(f"/users/{host_id}", json={"full_name": "Ana Host"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["full_name"] == "Ana Host"
        assert client.get(f"/users/{host_id}").json()["full_name"] == "Ana Host"

    @pytest.mark.api
    def test_patch_other_profile_forbidden(self, client, host, guest):
        host_id, _ = host
        _, guest_headers = guest
        response = client.patch(f"/users/{host_id}", json={"full_name": "X"}, headers=guest_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "You haven't access for this resource"

    @pytest.mark.api
    def test_correlation_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Correlation-ID": "req-123"})
        assert response.headers["X-Correlation-ID"] == "req-123"
        assert client.get("/api/health").headers["X-Correlation-ID"]


# ============================================================================
# ROOMS
# ============================================================================

class TestRoomAPI:
    """Test room listing endpoints"""

    @pytest.mark.api
    def test_create_and_get_room(self, client, room, host):
        response = client.get(f"/rooms/{room['room_id']}")
        assert response.status_code == 200
        assert response.json()["host_id"] == host[0]
        assert response.json()["images"] == []

        listed = client.get(f"/users/{host[0]}/rooms").json()
        assert [r["room_id"] for r in listed] == [room["room_id"]]

    @pytest.mark.api
    def test_create_room_for_other_user(self, client, host, guest):
        host_id, _ = host
        _, guest_headers = guest
        payload = {
            "title": "Sunny loft", "subtitle": "s", "description": "d",
            "price": 10, "capacity": 1, "location": "Lisbon", "room_type": "Apartment"
        }
        response = client.post(f"/users/{host_id}/rooms", json=payload, headers=guest_headers)
        assert response.status_code == 403

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_create_room_validation(self, client, host):
        host_id, headers = host
        payload = {
            "title": "Hut", "subtitle": "s", "description": "d",
            "price": 0, "capacity": 1, "location": "Lisbon", "room_type": "Apartment"
        }
        response = client.post(f"/users/{host_id}/rooms", json=payload, headers=headers)
        assert response.status_code == 422

    @pytest.mark.api
    def test_unknown_room(self, client):
        room_id = uuid4()
        response = client.get(f"/rooms/{room_id}")
        assert response.status_code == 404
        assert response.json()["status"] == "failed"
        assert response.json()["code"] == "ROOM_NOT_FOUND"

    @pytest.mark.api
    def test_patch_room_partial(self, client, room, host):
        host_id, headers = host
        response = client.patch(
            f"/users/{host_id}/rooms/{room['room_id']}", json={"price": 95}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["price"] == 95
        assert response.json()["title"] == room["title"]
        assert response.json()["version"] == room["version"] + 1

    @pytest.mark.api
    def test_other_host_room_hidden(self, client, room, guest):
        guest_id, _ = guest
        response = client.get(f"/users/{guest_id}/rooms/{room['room_id']}")
        assert response.status_code == 404

    @pytest.mark.api
    def test_add_image(self, client, room, host):
        host_id, headers = host
        image_id = str(uuid4())
        response = client.post(
            f"/users/{host_id}/rooms/{room['room_id']}/images",
            json={"image_id": image_id},
            headers=headers
        )
        assert response.status_code == 201
        assert response.json()["image_url"] == f"/images/{image_id}"

    @pytest.mark.api
    def test_delete_room(self, client, room, host):
        host_id, headers = host
        response = client.delete(f"/users/{host_id}/rooms/{room['room_id']}", headers=headers)
        assert response.status_code == 200
        assert client.get(f"/rooms/{room['room_id']}").status_code == 404


# ============================================================================
# RESERVATIONS
# ============================================================================

class TestReservationAPI:
    """Test guest reservation endpoints"""

    @pytest.mark.api
    def test_create_reservation(self, client, room, guest, host):
        response = book(client, guest, room["room_id"], 1, 3)
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == guest[0]
        assert body["host_id"] == host[0]
        assert parse(body["date_start"]) == parse(future(1))

        listed = client.get(f"/users/{guest[0]}/reservations", headers=guest[1]).json()
        assert [r["reservation_id"] for r in listed] == [body["reservation_id"]]

    @pytest.mark.api
    def test_overlap_returns_conflict(self, client, room, guest):
        assert book(client, guest, room["room_id"], 1, 4).status_code == 201
        other = register_and_login(client)
        response = book(client, other, room["room_id"], 3, 6)
        assert response.status_code == 409
        assert response.json()["code"] == "BOOKING_CONFLICT"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_back_to_back(self, client, room, guest):
        assert book(client, guest, room["room_id"], 1, 3).status_code == 201
        assert book(client, guest, room["room_id"], 3, 5).status_code == 201

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_reversed_dates(self, client, room, guest):
        response = book(client, guest, room["room_id"], 5, 2)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_RANGE"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_past_dates_rejected(self, client, room, guest):
        guest_id, headers = guest
        past = datetime.now(timezone.utc) - timedelta(days=2)
        response = client.post(
            f"/users/{guest_id}/reservations",
            json={"room_id": room["room_id"], "date_start": past.isoformat(), "date_end": future(1)},
            headers=headers
        )
        assert response.status_code == 422

    @pytest.mark.api
    def test_host_cannot_book_own_room(self, client, room, host):
        response = book(client, host, room["room_id"], 1, 3)
        assert response.status_code == 403

    @pytest.mark.api
    def test_unknown_room(self, client, guest):
        response = book(client, guest, str(uuid4()), 1, 3)
        assert response.status_code == 404

    @pytest.mark.api
    def test_move_reservation(self, client, room, guest):
        guest_id, headers = guest
        reservation = book(client, guest, room["room_id"], 1, 3).json()
        response = client.patch(
            f"/users/{guest_id}/reservations/{reservation['reservation_id']}",
            json={"date_end": future(5)},
            headers=headers
        )
        assert response.status_code == 200
        assert parse(response.json()["date_end"]) == parse(future(5))
        assert parse(response.json()["date_start"]) == parse(future(1))

    @pytest.mark.api
    def test_move_into_conflict(self, client, room, guest):
        guest_id, headers = guest
        reservation = book(client, guest, room["room_id"], 1, 3).json()
        book(client, register_and_login(client), room["room_id"], 5, 7)
        response = client.patch(
            f"/users/{guest_id}/reservations/{reservation['reservation_id']}",
            json={"date_end": future(6)},
            headers=headers
        )
        assert response.status_code == 409

    @pytest.mark.api
    def test_delete_reservation(self, client, room, guest):
        guest_id, headers = guest
        reservation = book(client, guest, room["room_id"], 1, 3).json()
        url = f"/users/{guest_id}/reservations/{reservation['reservation_id']}"
        assert client.delete(url, headers=headers).status_code == 200
        assert client.get(url, headers=headers).status_code == 404

    @pytest.mark.api
    def test_host_sees_room_bookings(self, client, room, guest, host):
        host_id, headers = host
        book(client, guest, room["room_id"], 1, 3)
        as_host = client.get(f"/users/{host_id}/reservations", params={"as_host": True}, headers=headers)
        assert len(as_host.json()) == 1
        per_room = client.get(f"/rooms/{room['room_id']}/reservations", headers=headers)
        assert len(per_room.json()) == 1

    @pytest.mark.api
    def test_room_bookings_need_owner(self, client, room, guest):
        _, headers = guest
        response = client.get(f"/rooms/{room['room_id']}/reservations", headers=headers)
        assert response.status_code == 403

    @pytest.mark.api
    def test_reservations_of_other_user_forbidden(self, client, guest, host):
        guest_id, _ = guest
        _, host_headers = host
        response = client.get(f"/users/{guest_id}/reservations", headers=host_headers)
        assert response.status_code == 403


# ============================================================================
# HOST RESERVATIONS & AVAILABILITY
# ============================================================================

class TestAvailabilityAPI:
    """Test host-open windows and availability queries"""

    @pytest.mark.api
    def test_availability_of_free_room(self, client, room):
        response = client.get(
            f"/rooms/{room['room_id']}/availability",
            params={"start": future(1), "end": future(2)}
        )
        assert response.status_code == 200
        assert response.json()["available"] is True
        assert response.json()["verdict"] == "AVAILABLE"

    @pytest.mark.api
    def test_availability_lists_conflicts(self, client, room, guest):
        book(client, guest, room["room_id"], 2, 4)
        response = client.get(
            f"/rooms/{room['room_id']}/availability",
            params={"start": future(3), "end": future(5)}
        )
        body = response.json()
        assert body["verdict"] == "GUEST_CONFLICT"
        assert len(body["conflicts"]) == 1

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_availability_invalid_range(self, client):
        response = client.get(
            f"/rooms/{uuid4()}/availability",
            params={"start": future(3), "end": future(3)}
        )
        assert response.status_code == 400

    @pytest.mark.api
    def test_host_window_gates_bookings(self, client, room, host, guest):
        host_id, headers = host
        response = client.post(
            f"/users/{host_id}/host-reservations",
            json={"room_id": room["room_id"], "date_start": future(10), "date_end": future(20)},
            headers=headers
        )
        assert response.status_code == 201

        closed = book(client, guest, room["room_id"], 1, 3)
        assert closed.status_code == 409
        assert "not offered" in closed.json()["error"]
        assert book(client, guest, room["room_id"], 10, 12).status_code == 201

        windows = client.get(f"/rooms/{room['room_id']}/host-reservations").json()
        assert len(windows) == 1

    @pytest.mark.api
    def test_only_host_opens_room(self, client, room, guest):
        guest_id, headers = guest
        response = client.post(
            f"/users/{guest_id}/host-reservations",
            json={"room_id": room["room_id"], "date_start": future(10), "date_end": future(20)},
            headers=headers
        )
        assert response.status_code == 403

    @pytest.mark.api
    def test_move_and_delete_host_window(self, client, room, host):
        host_id, headers = host
        window = client.post(
            f"/users/{host_id}/host-reservations",
            json={"room_id": room["room_id"], "date_start": future(10), "date_end": future(20)},
            headers=headers
        ).json()
        url = f"/users/{host_id}/host-reservations/{window['host_reservation_id']}"

        moved = client.patch(url, json={"date_start": future(8)}, headers=headers)
        assert moved.status_code == 200
        assert parse(moved.json()["date_start"]) == parse(future(8))

        assert client.delete(url, headers=headers).status_code == 200
        assert client.get(url).status_code == 404


# ============================================================================
# SEARCH
# ============================================================================

class TestSearchAPI:
    """Test catalog search endpoints"""

    @pytest.mark.api
    def test_search_by_location(self, client, room, location):
        response = client.post("/rooms/search", json={"location": location.lower()})
        assert response.status_code == 200
        assert [r["room_id"] for r in response.json()] == [room["room_id"]]

    @pytest.mark.api
    def test_query_string_search(self, client, room, location):
        response = client.get("/rooms", params={"location": location, "capacity": 2})
        assert [r["room_id"] for r in response.json()] == [room["room_id"]]
        assert client.get("/rooms", params={"location": location, "capacity": 3}).json() == []

    @pytest.mark.api
    def test_search_excludes_booked_rooms(self, client, room, guest, location):
        book(client, guest, room["room_id"], 1, 4)
        payload = {"location": location, "check_in_date": future(2), "check_out_date": future(3)}
        assert client.post("/rooms/search", json=payload).json() == []

        payload = {"location": location, "check_in_date": future(4), "check_out_date": future(6)}
        assert len(client.post("/rooms/search", json=payload).json()) == 1

    @pytest.mark.api
    def test_summary_image_url(self, client, room, host, location):
        host_id, headers = host
        image_id = str(uuid4())
        client.post(
            f"/users/{host_id}/rooms/{room['room_id']}/images",
            json={"image_id": image_id},
            headers=headers
        )
        summary = client.post("/rooms/search", json={"location": location}).json()[0]
        assert summary["image_url"] == f"/images/{image_id}"
        assert summary["title"] == room["title"]

    @pytest.mark.api
    def test_removing_first_image_changes_summary(self, client, room, host, location):
        host_id, headers = host
        first, second = str(uuid4()), str(uuid4())
        for image_id in (first, second):
            client.post(
                f"/users/{host_id}/rooms/{room['room_id']}/images",
                json={"image_id": image_id},
                headers=headers
            )

        response = client.delete(
            f"/users/{host_id}/rooms/{room['room_id']}/images/{first}", headers=headers
        )
        assert response.status_code == 200
        assert response.json()["image_id"] == first

        summary = client.post("/rooms/search", json={"location": location}).json()[0]
        assert summary["image_url"] == f"/images/{second}"

        listed = client.get(f"/rooms/{room['room_id']}/images").json()
        assert [i["image_id"] for i in listed] == [second]
        assert client.get(f"/rooms/{room['room_id']}/images/{first}").status_code == 404
        assert client.get(f"/rooms/{room['room_id']}/images/{second}").status_code == 200

    @pytest.mark.api
    def test_non_owner_cannot_remove_image(self, client, room, host, guest):
        host_id, headers = host
        guest_id, guest_headers = guest
        image_id = str(uuid4())
        client.post(
            f"/users/{host_id}/rooms/{room['room_id']}/images",
            json={"image_id": image_id},
            headers=headers
        )

        url = f"/rooms/{room['room_id']}/images/{image_id}"
        assert client.delete(f"/users/{host_id}{url}", headers=guest_headers).status_code == 403
        assert client.delete(f"/users/{guest_id}{url}", headers=guest_headers).status_code == 403
        assert client.get(url).status_code == 200

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_remove_unknown_image(self, client, room, host):
        host_id, headers = host
        response = client.delete(
            f"/users/{host_id}/rooms/{room['room_id']}/images/{uuid4()}", headers=headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "IMAGE_NOT_FOUND"

    @pytest.mark.api
    @pytest.mark.edge_case
    def test_search_with_reversed_dates(self, client, location):
        payload = {"location": location, "check_in_date": future(5), "check_out_date": future(1)}
        response = client.post("/rooms/search", json=payload)
        assert response.status_code == 400


# ============================================================================
# ERROR MAPPING WITH MOCKED SERVICES
# ============================================================================

class TestAPIMockErrors:
    """Test domain error mapping using mocked services"""

    def setup_method(self):
        self.user_id = uuid4()
        self.mock_res_service = AsyncMock(spec=ReservationService)
        app.dependency_overrides[get_reservation_service] = lambda: self.mock_res_service
        app.dependency_overrides[get_current_active_user] = lambda: User(
            user_id=self.user_id, username="mockuser"
        )

    def teardown_method(self):
        app.dependency_overrides.clear()

    @pytest.mark.api
    def test_conflict_from_service(self, client):
        self.mock_res_service.create_reservation.side_effect = BookingConflict(uuid4())
        response = client.post(
            f"/users/{self.user_id}/reservations",
            json={"room_id": str(uuid4()), "date_start": future(1), "date_end": future(2)}
        )
        assert response.status_code == 409
        assert response.json()["status"] == "failed"
        self.mock_res_service.create_reservation.assert_awaited_once()

    @pytest.mark.api
    def test_path_user_must_match_token(self, client):
        response = client.post(
            f"/users/{uuid4()}/reservations",
            json={"room_id": str(uuid4()), "date_start": future(1), "date_end": future(2)}
        )
        assert response.status_code == 403
        self.mock_res_service.create_reservation.assert_not_awaited()

    @pytest.mark.api
    def test_guest_listing_uses_guest_query(self, client):
        self.mock_res_service.get_reservations_by_guest.return_value = []
        response = client.get(f"/users/{self.user_id}/reservations")
        assert response.status_code == 200
        self.mock_res_service.get_reservations_by_guest.assert_awaited_once_with(self.user_id)
        self.mock_res_service.get_reservations_by_host.assert_not_awaited()
