#!/usr/bin/env python3
"""
Room Tests

Listing CRUD, search filters, nearby search, owner dashboard.
Run: pytest scripts/test_rooms.py
"""

import pytest

from app.services.room_service import haversine_km
from conftest import auth_headers, create_booking, create_room, login, register


def test_create_room_sets_defaults(client, owner):
    """[1] New listing is active, unrated and fully available."""
    room = create_room(client, owner)

    assert room["owner"] == owner["user"]["_id"]
    assert room["status"] == "active"
    assert room["rating"] == 0
    assert room["totalReviews"] == 0
    assert room["availability"]["availableRooms"] == 2
    assert room["availability"]["isAvailable"] is True


def test_students_cannot_create_rooms(client, student):
    from conftest import room_payload

    response = client.post("/api/rooms", json=room_payload(), headers=student["headers"])
    assert response.status_code == 403
    assert response.json()["error"] == "Owners only"


def test_create_room_validation(client, owner):
    from conftest import room_payload

    bad_pincode = room_payload()
    bad_pincode["location"]["pincode"] = "1100"
    assert client.post("/api/rooms", json=bad_pincode, headers=owner["headers"]).status_code == 400

    too_many = room_payload(availability={"totalRooms": 1, "availableRooms": 3})
    assert client.post("/api/rooms", json=too_many, headers=owner["headers"]).status_code == 400

    bad_image = room_payload(images=["ftp://example.com/a.jpg"])
    assert client.post("/api/rooms", json=bad_image, headers=owner["headers"]).status_code == 400


def test_search_filters(client, owner):
    """[2] City is case-insensitive, price range and amenities narrow results."""
    create_room(client, owner, title="Cheap Delhi room", price=5000)
    create_room(client, owner, title="Premium Delhi studio", price=15000, roomType="studio", amenities=["wifi", "gym"])
    mumbai = create_room(client, owner, title="Mumbai shared flat", price=9000, roomType="shared")
    client.put(
        f"/api/rooms/{mumbai['_id']}",
        json={"location": {"address": "1 Marine Drive", "city": "Mumbai", "state": "MH", "pincode": "400001"}},
        headers=owner["headers"],
    )

    def titles(**params):
        response = client.get("/api/rooms", params=params)
        assert response.status_code == 200
        return {room["title"] for room in response.json()["data"]["rooms"]}

    assert titles(city="delhi") == {"Cheap Delhi room", "Premium Delhi studio"}
    assert titles(minPrice=6000, maxPrice=10000) == {"Mumbai shared flat"}
    assert titles(roomType="studio") == {"Premium Delhi studio"}
    assert titles(amenities=["wifi", "gym"]) == {"Premium Delhi studio"}
    assert titles(search="marine") == {"Mumbai shared flat"}
    assert titles(city="del.*") == set()


def test_search_sort_and_pagination(client, owner):
    for price in (9000, 5000, 7000):
        create_room(client, owner, price=price)

    response = client.get("/api/rooms", params={"sort": "price_asc", "limit": 2})
    data = response.json()["data"]
    assert [room["price"] for room in data["rooms"]] == [5000, 7000]
    assert data["pagination"] == {
        "page": 1, "limit": 2, "total": 3, "totalPages": 2, "hasNextPage": True, "hasPrevPage": False,
    }

    response = client.get("/api/rooms", params={"sort": "price_desc", "limit": 2, "page": 2})
    assert [room["price"] for room in response.json()["data"]["rooms"]] == [5000]


def test_search_hides_inactive_rooms(client, owner, room):
    client.put(f"/api/rooms/{room['_id']}", json={"status": "inactive"}, headers=owner["headers"])
    response = client.get("/api/rooms")
    assert response.json()["data"]["rooms"] == []


def test_gender_filter_includes_any(client, owner):
    create_room(client, owner, title="Girls only PG", rules={"genderPreference": "female"})
    create_room(client, owner, title="Open PG")

    response = client.get("/api/rooms", params={"gender": "female"})
    assert {room["title"] for room in response.json()["data"]["rooms"]} == {"Girls only PG", "Open PG"}
    response = client.get("/api/rooms", params={"gender": "male"})
    assert {room["title"] for room in response.json()["data"]["rooms"]} == {"Open PG"}


def test_nearby_rooms(client, owner):
    """[3] Nearby search returns rooms inside the radius, nearest first."""
    near = create_room(client, owner, title="Near campus")
    far_payload = {
        "address": "Sector 18", "city": "Noida", "state": "UP", "pincode": "201301",
        "coordinates": {"lat": 28.5708, "lng": 77.3261},
    }
    create_room(client, owner, title="Far away", location=far_payload)

    response = client.get("/api/rooms/nearby", params={"lat": 28.5449, "lng": 77.1925, "radius": 3})
    data = response.json()["data"]
    assert data["count"] == 1
    assert data["rooms"][0]["_id"] == near["_id"]
    assert data["rooms"][0]["distance"] < 0.1

    response = client.get("/api/rooms/nearby", params={"lat": 28.5449, "lng": 77.1925, "radius": 30})
    assert [room["title"] for room in response.json()["data"]["rooms"]] == ["Near campus", "Far away"]


def test_haversine_distance():
    # Delhi to Mumbai is roughly 1150 km
    assert haversine_km(28.6139, 77.2090, 19.0760, 72.8777) == pytest.approx(1150, rel=0.02)
    assert haversine_km(10, 10, 10, 10) == 0


def test_room_detail_includes_owner_summary(client, owner, room):
    response = client.get(f"/api/rooms/{room['_id']}")
    assert response.status_code == 200
    detail = response.json()["data"]
    assert detail["owner"]["fullName"] == owner["user"]["fullName"]
    assert detail["owner"]["businessName"] == "Nest Homes"
    assert "password" not in detail["owner"]


def test_room_detail_errors(client):
    assert client.get("/api/rooms/not-an-id").status_code == 400
    assert client.get("/api/rooms/64b7f0000000000000000000").status_code == 404


def test_update_requires_ownership(client, owner, room):
    register(client, "owner", "rival@example.com", "9000000009")
    rival = {"headers": auth_headers(login(client, "rival@example.com"))}

    response = client.put(f"/api/rooms/{room['_id']}", json={"price": 1}, headers=rival["headers"])
    assert response.status_code == 403

    response = client.put(f"/api/rooms/{room['_id']}", json={"price": 8500}, headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["data"]["price"] == 8500
    assert response.json()["data"]["title"] == room["title"]


def update_availability(client, owner, room_id, **availability):
    return client.put(f"/api/rooms/{room_id}", json={"availability": availability}, headers=owner["headers"])


def test_update_availability_keeps_booked_slots(client, owner, student, room):
    """[5] Availability edits never give away rooms already held by bookings."""
    create_booking(client, student, room["_id"])

    response = update_availability(client, owner, room["_id"], isAvailable=True)
    availability = response.json()["data"]["availability"]
    assert availability["totalRooms"] == 2
    assert availability["availableRooms"] == 1
    assert availability["isAvailable"] is True
    assert availability["availableFrom"] is not None

    # Growing the listing shifts free slots by the same amount
    availability = update_availability(client, owner, room["_id"], totalRooms=4).json()["data"]["availability"]
    assert availability["totalRooms"] == 4
    assert availability["availableRooms"] == 3

    response = update_availability(client, owner, room["_id"], totalRooms=0)
    assert response.status_code == 400


def test_update_available_rooms_checked_against_stored_total(client, owner):
    room = create_room(client, owner, availability={"totalRooms": 3})

    response = update_availability(client, owner, room["_id"], availableRooms=3)
    assert response.status_code == 200
    assert response.json()["data"]["availability"]["availableRooms"] == 3

    response = update_availability(client, owner, room["_id"], availableRooms=4)
    assert response.status_code == 400
    assert response.json()["error"] == "availableRooms cannot exceed totalRooms"


def test_shrinking_below_booked_rooms_is_rejected(client, owner, student, other_student):
    room = create_room(client, owner, availability={"totalRooms": 2})
    create_booking(client, student, room["_id"])
    create_booking(client, other_student, room["_id"])

    response = update_availability(client, owner, room["_id"], totalRooms=1)
    assert response.status_code == 400

    # Reopening a full room by adding capacity makes it bookable again
    availability = update_availability(client, owner, room["_id"], totalRooms=3).json()["data"]["availability"]
    assert availability["availableRooms"] == 1
    assert availability["isAvailable"] is True


def test_delete_blocked_by_open_bookings(client, db, owner, student, room):
    """[4] A listing with pending/active bookings cannot be deleted."""
    create_booking(client, student, room["_id"])

    response = client.delete(f"/api/rooms/{room['_id']}", headers=owner["headers"])
    assert response.status_code == 409

    db["bookings"].update_many({}, {"$set": {"status": "completed"}})
    response = client.delete(f"/api/rooms/{room['_id']}", headers=owner["headers"])
    assert response.status_code == 200
    assert client.get(f"/api/rooms/{room['_id']}").status_code == 404


def test_my_properties_booking_stats(client, owner, student, room):
    create_booking(client, student, room["_id"])
    create_room(client, owner, title="Second listing")

    response = client.get("/api/properties/my-properties", headers=owner["headers"])
    data = response.json()["data"]
    assert data["total"] == 2
    stats = {prop["_id"]: prop["bookingStats"] for prop in data["properties"]}
    assert stats[room["_id"]] == {"pending": 1, "active": 0, "total": 1}
