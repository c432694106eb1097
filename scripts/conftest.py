"""
Shared test fixtures.

Every test gets a fresh in-memory MongoDB (mongomock) and stubbed
integrations, so the suite runs without MongoDB, SMTP, SMS, Razorpay,
Cloudinary or Google credentials.
"""

import sys
from datetime import date, timedelta

sys.path.insert(0, '.')

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.core.rate_limit import login_limiter
from app.db import mongodb
from app.main import app
from app.services import cloudinary_client, google_meet_client, notification_client, razorpay_client

PASSWORD = "Password123"


@pytest.fixture(autouse=True)
def db(monkeypatch):
    """Fresh mongomock database with the app's indexes."""
    client = mongomock.MongoClient()
    database = client["studentnest_test"]
    monkeypatch.setattr(mongodb, "_client", client)
    monkeypatch.setattr(mongodb, "_db", database)
    mongodb.init_mongo_indexes()
    login_limiter.reset()
    yield database
    login_limiter.reset()


@pytest.fixture
def sent_otps(monkeypatch):
    """Captures delivered OTP codes: {identifier: code}."""
    codes = {}
    monkeypatch.setattr(notification_client, "send_email_otp", lambda email, code: codes.__setitem__(email, code))
    monkeypatch.setattr(notification_client, "send_sms_otp", lambda phone, code: codes.__setitem__(phone, code))
    return codes


@pytest.fixture(autouse=True)
def fake_integrations(monkeypatch):
    """Stub outbound HTTP integrations; tests can inspect the recorded calls."""
    calls = {"orders": [], "uploads": [], "deletes": [], "meet": []}

    def create_order(amount_paise, receipt, notes=None, currency="INR"):
        calls["orders"].append({"amount": amount_paise, "receipt": receipt, "notes": notes})
        return {"id": f"order_{len(calls['orders'])}", "amount": amount_paise, "currency": currency}

    def upload_media(content, media_type="image", category="property"):
        calls["uploads"].append({"size": len(content), "type": media_type, "category": category})
        number = len(calls["uploads"])
        return {
            "url": f"https://res.cloudinary.com/demo/{category}/{media_type}s/file{number}.jpg",
            "publicId": f"student-nest/{category}/{media_type}s/file{number}",
            "width": 800,
            "height": 600,
            "format": "jpg",
            "size": len(content),
            "duration": None,
            "uploadedAt": None,
        }

    def delete_media(public_id, media_type="image"):
        calls["deletes"].append(public_id)
        return True

    def create_meet_event(access_token, start, title, description=None, attendees=None):
        calls["meet"].append({"token": access_token, "start": start, "attendees": attendees})
        return {
            "eventId": "evt123",
            "meetingLink": "https://meet.google.com/abc-defg-hij",
            "meetingId": "abc-defg-hij",
            "eventLink": "https://calendar.google.com/event?eid=evt123",
        }

    monkeypatch.setattr(razorpay_client, "create_order", create_order)
    monkeypatch.setattr(cloudinary_client, "upload_media", upload_media)
    monkeypatch.setattr(cloudinary_client, "delete_media", delete_media)
    monkeypatch.setattr(google_meet_client, "create_meet_event", create_meet_event)
    return calls


@pytest.fixture
def client():
    return TestClient(app)


# ============================================================
# USERS
# ============================================================

def register(client, role, email, phone, **extra):
    payload = {
        "email": email,
        "phone": phone,
        "password": PASSWORD,
        "fullName": extra.pop("fullName", email.split("@")[0].title()),
        "role": role,
        **extra,
    }
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]["user"]


def login(client, identifier, password=PASSWORD):
    response = client.post("/api/auth/login", json={"identifier": identifier, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["accessToken"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def verify_user(db, email):
    db["users"].update_one({"email": email}, {"$set": {"isEmailVerified": True, "isPhoneVerified": True}})


@pytest.fixture
def owner(client):
    user = register(client, "owner", "owner@example.com", "9000000001", businessName="Nest Homes")
    return {"user": user, "headers": auth_headers(login(client, "owner@example.com"))}


@pytest.fixture
def student(client):
    user = register(client, "student", "student@example.com", "9000000002", collegeName="IIT Delhi")
    return {"user": user, "headers": auth_headers(login(client, "student@example.com"))}


@pytest.fixture
def other_student(client):
    user = register(client, "student", "friend@example.com", "9000000003")
    return {"user": user, "headers": auth_headers(login(client, "friend@example.com"))}


# ============================================================
# ROOMS / BOOKINGS
# ============================================================

def room_payload(**overrides):
    payload = {
        "title": "Sunny single room near campus",
        "description": "Bright furnished room with study table and wifi",
        "price": 8000,
        "roomType": "single",
        "accommodationType": "pg",
        "location": {
            "address": "12 College Road",
            "city": "Delhi",
            "state": "Delhi",
            "pincode": "110016",
            "coordinates": {"lat": 28.5450, "lng": 77.1926},
        },
        "amenities": ["wifi", "ac"],
        "availability": {"totalRooms": 2},
        "securityDeposit": 10000,
        "maintenanceCharges": 500,
    }
    payload.update(overrides)
    return payload


def create_room(client, owner, **overrides):
    response = client.post("/api/rooms", json=room_payload(**overrides), headers=owner["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def room(client, owner):
    return create_room(client, owner)


def future_day(days=7):
    return (date.today() + timedelta(days=days)).isoformat()


def create_booking(client, student, room_id, **overrides):
    payload = {"roomId": room_id, "moveInDate": future_day(), "duration": 6, **overrides}
    response = client.post("/api/bookings", json=payload, headers=student["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


def booking_action(client, party, booking_id, action, **extra):
    return client.post(
        f"/api/bookings/{booking_id}/actions",
        json={"action": action, **extra},
        headers=party["headers"],
    )
