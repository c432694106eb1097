#!/usr/bin/env python3
"""
Payment Tests

Razorpay orders and signature verification, offline payments, history.
Razorpay order creation is stubbed in conftest.fake_integrations.
Run: pytest scripts/test_payments.py
"""

import hashlib
import hmac

import pytest

from app.core.config import get_settings
from app.services.razorpay_client import amount_to_paise, verify_signature
from conftest import booking_action, create_booking

settings = get_settings()


def sign(order_id, payment_id):
    return hmac.new(
        settings.razorpay_key_secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256
    ).hexdigest()


def create_order(client, student, booking_id):
    response = client.post("/api/payments/create-order", json={"bookingId": booking_id}, headers=student["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_amount_to_paise():
    assert amount_to_paise(18500) == 1850000
    assert amount_to_paise(99.99) == 9999


def test_verify_signature():
    assert verify_signature("order_1", "pay_1", sign("order_1", "pay_1")) is True
    assert verify_signature("order_1", "pay_1", sign("order_1", "pay_2")) is False
    assert verify_signature("order_1", "pay_1", "\u00e9" * 64) is False


def test_create_order_uses_booking_total(client, db, student, room, fake_integrations):
    """[1] Order amount is the booking total in paise."""
    booking = create_booking(client, student, room["_id"])
    order = create_order(client, student, booking["_id"])

    assert order["orderId"] == "order_1"
    assert order["amount"] == 1850000
    assert order["currency"] == "INR"
    assert fake_integrations["orders"][0]["notes"]["bookingId"] == booking["_id"]

    transaction = db["transactions"].find_one({"orderId": "order_1"})
    assert transaction["status"] == "created"
    assert transaction["method"] == "razorpay"


def test_create_order_only_for_own_booking(client, student, other_student, room):
    booking = create_booking(client, student, room["_id"])
    response = client.post(
        "/api/payments/create-order", json={"bookingId": booking["_id"]}, headers=other_student["headers"]
    )
    assert response.status_code == 403


def test_verify_payment_confirms_booking(client, db, student, room):
    """[2] A valid signature captures the payment and confirms a pending booking."""
    booking = create_booking(client, student, room["_id"])
    order = create_order(client, student, booking["_id"])

    response = client.post(
        "/api/payments/verify",
        json={"orderId": order["orderId"], "paymentId": "pay_123", "signature": sign(order["orderId"], "pay_123")},
        headers=student["headers"],
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "captured"

    updated = client.get(f"/api/bookings/{booking['_id']}", headers=student["headers"]).json()["data"]
    assert updated["paymentStatus"] == "paid"
    assert updated["status"] == "confirmed"
    assert updated["paymentDetails"]["paymentId"] == "pay_123"
    assert updated["paymentDetails"]["amount"] == 18500

    # Paid bookings cannot be charged again
    response = client.post(
        "/api/payments/create-order", json={"bookingId": booking["_id"]}, headers=student["headers"]
    )
    assert response.status_code == 409


@pytest.mark.parametrize("signature", ["forged", "\u00e9t\u00e9"])
def test_verify_rejects_bad_signature(client, db, student, room, signature):
    booking = create_booking(client, student, room["_id"])
    order = create_order(client, student, booking["_id"])

    response = client.post(
        "/api/payments/verify",
        json={"orderId": order["orderId"], "paymentId": "pay_123", "signature": signature},
        headers=student["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Payment verification failed"
    assert db["transactions"].find_one({"orderId": order["orderId"]})["status"] == "failed"
    assert db["bookings"].find_one({})["paymentStatus"] == "pending"


def test_verify_unknown_order(client, student):
    response = client.post(
        "/api/payments/verify",
        json={"orderId": "order_missing", "paymentId": "pay_1", "signature": "x"},
        headers=student["headers"],
    )
    assert response.status_code == 404


def test_offline_payment_flow(client, owner, student, room):
    """[3] Student reports payment, owner confirms it."""
    booking = create_booking(client, student, room["_id"])

    response = client.post(
        "/api/payments/confirm-offline",
        json={"bookingId": booking["_id"], "paymentMethod": "upi", "transactionId": "UPI123"},
        headers=student["headers"],
    )
    assert response.status_code == 200
    assert response.json()["data"]["paymentStatus"] == "pending_confirmation"

    again = client.post(
        "/api/payments/confirm-offline",
        json={"bookingId": booking["_id"], "paymentMethod": "cash"},
        headers=student["headers"],
    )
    assert again.status_code == 409

    pending = client.get("/api/owner/payments/pending", headers=owner["headers"]).json()["data"]
    assert pending["count"] == 1
    assert pending["bookings"][0]["_id"] == booking["_id"]

    response = client.post(
        "/api/owner/payments/confirm", json={"bookingId": booking["_id"], "notes": "Received"}, headers=owner["headers"]
    )
    data = response.json()["data"]
    assert data["paymentStatus"] == "paid"
    assert data["status"] == "confirmed"
    assert data["paymentDetails"]["method"] == "upi"

    response = client.post("/api/owner/payments/confirm", json={"bookingId": booking["_id"]}, headers=owner["headers"])
    assert response.status_code == 400


def test_cannot_pay_cancelled_booking(client, student, room):
    booking = create_booking(client, student, room["_id"])
    booking_action(client, student, booking["_id"], "cancel", reason="Found another place")

    response = client.post(
        "/api/payments/confirm-offline",
        json={"bookingId": booking["_id"], "paymentMethod": "cash"},
        headers=student["headers"],
    )
    assert response.status_code == 400


def test_history_and_statistics(client, student, room):
    booking = create_booking(client, student, room["_id"])
    order = create_order(client, student, booking["_id"])
    client.post(
        "/api/payments/verify",
        json={"orderId": order["orderId"], "paymentId": "pay_1", "signature": sign(order["orderId"], "pay_1")},
        headers=student["headers"],
    )

    history = client.get("/api/payments/history", headers=student["headers"]).json()["data"]
    assert history["pagination"]["total"] == 1
    assert history["transactions"][0]["paymentId"] == "pay_1"

    stats = client.get("/api/payments/statistics", headers=student["headers"]).json()["data"]
    assert stats["totalCount"] == 1
    assert stats["paidAmount"] == 18500
    assert stats["statusBreakdown"]["captured"]["count"] == 1
