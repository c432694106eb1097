#!/usr/bin/env python3
"""
OTP Tests

Email / phone verification codes: cooldown, attempts, expiry, user flags.
Run: pytest scripts/test_otp.py
"""

from datetime import datetime, timedelta

from app.core.config import get_settings
from app.core.exceptions import IntegrationError
from app.services import notification_client
from app.services.otp_service import hash_code
from conftest import register

settings = get_settings()


def test_email_otp_verifies_user(client, db, sent_otps):
    """[1] Happy path: send, verify, user flagged."""
    register(client, "student", "asha@example.com", "9876543210")

    response = client.post("/api/otp/email/send", json={"email": "Asha@Example.com"})
    assert response.status_code == 200
    assert response.json()["data"]["expiresIn"] == settings.otp_expiry_minutes * 60

    code = sent_otps["asha@example.com"]
    assert len(code) == settings.otp_length
    stored = db["otps"].find_one({"identifier": "asha@example.com"})
    assert stored["codeHash"] == hash_code(code)
    assert "code" not in stored

    response = client.post("/api/otp/email/verify", json={"email": "asha@example.com", "code": code})
    assert response.status_code == 200
    assert response.json()["data"] == {"verified": True, "userUpdated": True}
    assert db["users"].find_one({"email": "asha@example.com"})["isEmailVerified"] is True


def test_phone_otp_without_account(client, sent_otps):
    client.post("/api/otp/phone/send", json={"phone": "98765 43210"})
    code = sent_otps["9876543210"]

    response = client.post("/api/otp/phone/verify", json={"phone": "9876543210", "code": code})
    assert response.status_code == 200
    assert response.json()["data"]["userUpdated"] is False


def test_resend_cooldown(client, sent_otps):
    assert client.post("/api/otp/email/send", json={"email": "a@example.com"}).status_code == 200

    response = client.post("/api/otp/email/send", json={"email": "a@example.com"})
    assert response.status_code == 429
    assert 0 < response.json()["retryAfter"] <= settings.otp_resend_cooldown_seconds


def test_wrong_code_counts_attempts(client, db, sent_otps):
    """[2] Wrong codes report remaining attempts, then lock the code."""
    client.post("/api/otp/email/send", json={"email": "a@example.com"})
    code = sent_otps["a@example.com"]
    wrong = "000000" if code != "000000" else "111111"

    response = client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": wrong})
    assert response.status_code == 400
    assert response.json()["error"] == f"Invalid OTP. {settings.otp_max_attempts - 1} attempts remaining"

    db["otps"].update_one({"identifier": "a@example.com"}, {"$set": {"attempts": settings.otp_max_attempts}})
    response = client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": code})
    assert response.status_code == 429


def test_expired_code(client, db, sent_otps):
    client.post("/api/otp/email/send", json={"email": "a@example.com"})
    code = sent_otps["a@example.com"]
    db["otps"].update_one(
        {"identifier": "a@example.com"},
        {"$set": {"expiresAt": datetime.utcnow() - timedelta(minutes=1)}},
    )

    response = client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": code})
    assert response.status_code == 400
    assert "expired" in response.json()["error"]


def test_code_cannot_be_reused(client, sent_otps):
    client.post("/api/otp/email/send", json={"email": "a@example.com"})
    code = sent_otps["a@example.com"]
    assert client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": code}).status_code == 200

    response = client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": code})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or expired OTP"


def test_delivery_failure_discards_code(client, db, monkeypatch):
    def broken(email, code):
        raise IntegrationError("Failed to send verification email")

    monkeypatch.setattr(notification_client, "send_email_otp", broken)

    response = client.post("/api/otp/email/send", json={"email": "a@example.com"})
    assert response.status_code == 502
    assert db["otps"].count_documents({"identifier": "a@example.com"}) == 0


def test_invalid_code_format(client):
    response = client.post("/api/otp/email/verify", json={"email": "a@example.com", "code": "12ab"})
    assert response.status_code == 400
