#!/usr/bin/env python3
"""
Meeting Tests

Visit requests, owner / student responses, reschedules, ratings, Google Meet.
Google Calendar is stubbed in conftest.fake_integrations.
Run: pytest scripts/test_meetings.py
"""

from datetime import datetime

import pytest

from app.core.exceptions import ValidationFailedError
from app.services.meeting_service import combine_date_time, infer_platform
from conftest import future_day


def schedule(client, student, room_id, **extra):
    payload = {"propertyId": room_id, "requestedDate": future_day(3), "requestedTime": "11:30", **extra}
    response = client.post("/api/meetings", json=payload, headers=student["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


def owner_respond(client, owner, meeting_id, action, **extra):
    return client.post(
        f"/api/meetings/{meeting_id}/respond", json={"action": action, **extra}, headers=owner["headers"]
    )


def student_respond(client, student, meeting_id, action, **extra):
    return client.post(
        f"/api/meetings/{meeting_id}/student-respond", json={"action": action, **extra}, headers=student["headers"]
    )


def complete(client, owner, meeting_id):
    owner_respond(client, owner, meeting_id, "accept")
    response = client.put(
        f"/api/meetings/{meeting_id}/status",
        json={"status": "completed", "studentInterested": True, "notes": "Liked the room"},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    return response.json()["data"]


def test_combine_date_time():
    assert combine_date_time(datetime(2030, 5, 1), "09:45") == datetime(2030, 5, 1, 9, 45)
    with pytest.raises(ValidationFailedError):
        combine_date_time(datetime(2030, 5, 1), "late")


def test_infer_platform():
    assert infer_platform("https://meet.google.com/abc") == "google_meet"
    assert infer_platform("https://us02web.zoom.us/j/1") == "zoom"
    assert infer_platform("https://wa.me/919000000000") == "whatsapp"
    assert infer_platform("https://example.com") is None


def test_schedule_meeting(client, owner, student, room):
    """[1] A new request is pending with the requested slot recorded."""
    meeting = schedule(client, student, room["_id"], message="Can I visit on Saturday?")

    assert meeting["status"] == "pending"
    assert meeting["meetingType"] == "physical"
    assert meeting["purpose"] == "property_viewing"
    assert meeting["requestedTime"] == "11:30"
    assert meeting["preferredDates"][0].endswith("11:30:00")
    assert meeting["property"]["title"] == room["title"]
    assert meeting["owner"]["email"] == "owner@example.com"
    assert meeting["history"][0]["action"] == "scheduled"


def test_schedule_virtual_meeting(client, student, room):
    meeting = schedule(client, student, room["_id"], meetingType="virtual", meetingLink="https://zoom.us/j/42")
    assert meeting["meetingType"] == "virtual"
    assert meeting["virtualMeetingDetails"]["platform"] == "zoom"


def test_unknown_meeting_type_is_physical(client, student, room):
    meeting = schedule(client, student, room["_id"], meetingType="rooftop")
    assert meeting["meetingType"] == "physical"


def test_schedule_rules(client, student, room):
    response = client.post(
        "/api/meetings",
        json={"propertyId": room["_id"], "requestedDate": "2020-01-01", "requestedTime": "10:00"},
        headers=student["headers"],
    )
    assert response.status_code == 400

    response = client.post(
        "/api/meetings",
        json={"propertyId": room["_id"], "requestedDate": future_day(), "requestedTime": "25:00"},
        headers=student["headers"],
    )
    assert response.status_code == 400

    schedule(client, student, room["_id"])
    response = client.post(
        "/api/meetings",
        json={"propertyId": room["_id"], "requestedDate": future_day(4), "requestedTime": "10:00"},
        headers=student["headers"],
    )
    assert response.status_code == 409


def test_owner_accepts_requested_slot(client, owner, student, room):
    meeting = schedule(client, student, room["_id"])

    response = owner_respond(client, owner, meeting["_id"], "accept", response="See you then")
    assert response.json()["message"] == "Meeting confirmed"
    data = response.json()["data"]
    assert data["confirmedTime"] == "11:30"
    assert data["confirmedDate"].startswith(future_day(3))
    assert data["ownerResponse"] == "See you then"

    assert owner_respond(client, owner, meeting["_id"], "decline").status_code == 400


def test_only_owner_responds(client, student, other_student, room):
    meeting = schedule(client, student, room["_id"])
    assert owner_respond(client, student, meeting["_id"], "accept").status_code == 403
    assert client.get(f"/api/meetings/{meeting['_id']}", headers=other_student["headers"]).status_code == 403


def test_reschedule_and_counter_proposal(client, owner, student, room):
    """[2] Owner reschedules, student counters, owner accepts the counter."""
    meeting = schedule(client, student, room["_id"])

    response = client.put(
        f"/api/meetings/{meeting['_id']}/reschedule",
        json={"newDate": future_day(5), "newTime": "16:00", "reason": "Busy that morning"},
        headers=owner["headers"],
    )
    data = response.json()["data"]
    assert data["status"] == "rescheduled"
    assert data["confirmedTime"] == "16:00"

    assert student_respond(client, student, meeting["_id"], "counter_reschedule").status_code == 400

    response = student_respond(
        client, student, meeting["_id"], "counter_reschedule",
        counterProposal={"newDate": future_day(6), "newTime": "12:00", "reason": "Classes"},
    )
    data = response.json()["data"]
    assert data["status"] == "pending_owner_response"
    assert data["counterProposal"]["time"] == "12:00"

    response = owner_respond(client, owner, meeting["_id"], "accept_counter")
    data = response.json()["data"]
    assert data["status"] == "confirmed"
    assert data["confirmedDate"].startswith(future_day(6))
    assert data["counterProposal"] is None

    actions = [entry["action"] for entry in data["history"]]
    assert actions == ["scheduled", "rescheduled", "student_counter_reschedule", "owner_accept_counter"]


def test_declined_counter_returns_to_pending(client, owner, student, room):
    meeting = schedule(client, student, room["_id"])
    owner_respond(client, owner, meeting["_id"], "accept")
    student_respond(
        client, student, meeting["_id"], "counter_reschedule",
        counterProposal={"newDate": future_day(6), "newTime": "12:00"},
    )

    response = owner_respond(client, owner, meeting["_id"], "decline_counter")
    assert response.json()["data"]["status"] == "pending"


def test_cancel_meeting(client, student, room):
    meeting = schedule(client, student, room["_id"])

    response = client.post(f"/api/meetings/{meeting['_id']}/cancel", json={}, headers=student["headers"])
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["cancellationReason"] == "No reason provided"

    response = client.post(f"/api/meetings/{meeting['_id']}/cancel", json={}, headers=student["headers"])
    assert response.status_code == 400


def test_rating_after_completion(client, owner, student, room):
    """[3] Each side rates once; the average appears when both have rated."""
    meeting = schedule(client, student, room["_id"])

    response = client.post(f"/api/meetings/{meeting['_id']}/rating", json={"rating": 5}, headers=student["headers"])
    assert response.status_code == 400

    completed = complete(client, owner, meeting["_id"])
    assert completed["outcome"]["studentInterested"] is True

    response = client.post(
        f"/api/meetings/{meeting['_id']}/rating", json={"rating": 5, "comment": "Great"}, headers=student["headers"]
    )
    assert response.json()["data"]["averageRating"] is None

    again = client.post(f"/api/meetings/{meeting['_id']}/rating", json={"rating": 4}, headers=student["headers"])
    assert again.status_code == 409

    response = client.post(f"/api/meetings/{meeting['_id']}/rating", json={"rating": 4}, headers=owner["headers"])
    assert response.json()["data"]["averageRating"] == 4.5


def test_status_update_on_finished_meeting(client, owner, student, room):
    meeting = schedule(client, student, room["_id"])
    complete(client, owner, meeting["_id"])

    response = client.put(
        f"/api/meetings/{meeting['_id']}/status", json={"status": "cancelled"}, headers=owner["headers"]
    )
    assert response.status_code == 400


def test_google_meet_link(client, owner, student, room, fake_integrations):
    """[4] Link is created once; later calls return the existing link."""
    meeting = schedule(client, student, room["_id"])
    owner_respond(client, owner, meeting["_id"], "accept")

    response = client.post(
        f"/api/meetings/{meeting['_id']}/google-meet", json={"googleAccessToken": "ya29.token"},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["created"] is True
    assert data["meetingLink"] == "https://meet.google.com/abc-defg-hij"
    assert data["meeting"]["meetingType"] == "virtual"

    call = fake_integrations["meet"][0]
    assert call["token"] == "ya29.token"
    assert sorted(call["attendees"]) == ["owner@example.com", "student@example.com"]

    response = client.post(
        f"/api/meetings/{meeting['_id']}/google-meet", json={"googleAccessToken": "ya29.token"},
        headers=student["headers"],
    )
    assert response.json()["data"]["created"] is False
    assert len(fake_integrations["meet"]) == 1


def test_list_meetings(client, owner, student, room):
    meeting = schedule(client, student, room["_id"])

    owner_list = client.get("/api/meetings", headers=owner["headers"]).json()["data"]
    assert owner_list["total"] == 1
    assert owner_list["meetings"][0]["_id"] == meeting["_id"]

    confirmed = client.get("/api/meetings", params={"status": "confirmed"}, headers=student["headers"]).json()["data"]
    assert confirmed["total"] == 0
