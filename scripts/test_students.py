#!/usr/bin/env python3
"""
Student / Owner Profile Tests

Profiles, preferred locations, saved rooms.
Run: pytest scripts/test_students.py
"""

from conftest import create_room


def test_student_profile_update(client, student):
    response = client.put(
        "/api/student/profile",
        json={"course": "B.Tech", "yearOfStudy": 2, "preferences": {"budgetMin": 4000, "budgetMax": 9000}},
        headers=student["headers"],
    )
    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["course"] == "B.Tech"
    assert user["preferences"]["budgetMax"] == 9000
    assert user["collegeName"] == "IIT Delhi"
    assert "password" not in user

    profile = client.get("/api/student/profile", headers=student["headers"]).json()["data"]["user"]
    assert profile["yearOfStudy"] == 2


def test_empty_profile_update(client, student):
    response = client.put("/api/student/profile", json={}, headers=student["headers"])
    assert response.status_code == 400
    assert response.json()["error"] == "No fields to update"


def test_owner_profile(client, owner, room):
    response = client.get("/api/profile/owner", headers=owner["headers"])
    data = response.json()["data"]
    assert data["user"]["businessName"] == "Nest Homes"
    assert data["stats"] == {"totalProperties": 1, "activeProperties": 1}

    response = client.put(
        "/api/profile/owner",
        json={"businessType": "company", "experience": 5},
        headers=owner["headers"],
    )
    assert response.json()["data"]["user"]["businessType"] == "company"


def test_profile_routes_are_role_scoped(client, owner, student):
    assert client.get("/api/student/profile", headers=owner["headers"]).status_code == 403
    assert client.get("/api/profile/owner", headers=student["headers"]).status_code == 403


def test_preferred_locations_limit(client, student):
    """[1] At most three preferred locations."""
    for number in range(3):
        response = client.post(
            "/api/student/locations",
            json={"address": f"Campus gate {number}", "coordinates": {"lat": 28.5, "lng": 77.2}},
            headers=student["headers"],
        )
        assert response.status_code == 201
    assert len(response.json()["data"]["preferredLocations"]) == 3

    response = client.post(
        "/api/student/locations",
        json={"address": "One too many", "coordinates": {"lat": 28.5, "lng": 77.2}},
        headers=student["headers"],
    )
    assert response.status_code == 400

    response = client.delete("/api/student/locations/1", headers=student["headers"])
    addresses = [loc["address"] for loc in response.json()["data"]["preferredLocations"]]
    assert addresses == ["Campus gate 0", "Campus gate 2"]

    assert client.delete("/api/student/locations/5", headers=student["headers"]).status_code == 404


def test_current_location(client, student):
    response = client.put(
        "/api/student/locations/current",
        json={"lat": 28.6, "lng": 77.2, "city": "Delhi"},
        headers=student["headers"],
    )
    assert response.json()["data"]["currentLocation"]["coordinates"] == {"lat": 28.6, "lng": 77.2}

    locations = client.get("/api/student/locations", headers=student["headers"]).json()["data"]
    assert locations["currentLocation"]["city"] == "Delhi"
    assert locations["preferredLocations"] == []


def test_saved_rooms(client, owner, student):
    """[2] Saving is idempotent; unknown rooms are refused."""
    room = create_room(client, owner)

    first = client.post("/api/saved-rooms", json={"roomId": room["_id"]}, headers=student["headers"])
    second = client.post("/api/saved-rooms", json={"roomId": room["_id"]}, headers=student["headers"])
    assert first.json()["message"] == "Room saved"
    assert second.json()["message"] == "Room already saved"

    saved = client.get("/api/saved-rooms", headers=student["headers"]).json()["data"]
    assert saved["total"] == 1
    assert saved["rooms"][0]["_id"] == room["_id"]

    missing = client.post(
        "/api/saved-rooms", json={"roomId": "64b7f0000000000000000000"}, headers=student["headers"]
    )
    assert missing.status_code == 404

    response = client.delete(f"/api/saved-rooms/{room['_id']}", headers=student["headers"])
    assert response.json()["data"]["saved"] is False
    assert client.get("/api/saved-rooms", headers=student["headers"]).json()["data"]["total"] == 0
