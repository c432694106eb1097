"""
Payment Service - online (Razorpay) and offline booking payments.

Online:  create_order -> Razorpay checkout in the browser -> verify
Offline: student confirm_offline (pending_confirmation) -> owner confirm (paid)

Every online order is tracked in the transactions collection.
"""

import time
from datetime import datetime
from typing import Dict, List

from bson import ObjectId
from pymongo.collection import Collection

from app.core.config import get_settings
from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services import razorpay_client
from app.services.booking_service import BookingService
from app.services.mongo_service import paginate, same_id, serialize_doc

settings = get_settings()
log = get_logger(__name__)

PAYABLE_BOOKING_STATUSES = ["pending", "confirmed", "active"]


class PaymentService:
    """Handles transactions and booking payment state."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["transactions"])
        self.bookings = BookingService()

    def _payable_booking(self, booking_id, student_id: ObjectId) -> dict:
        booking = self.bookings.require(booking_id)
        if not same_id(booking["student"], student_id):
            raise PermissionDeniedError("You can only pay for your own bookings")
        if booking["status"] not in PAYABLE_BOOKING_STATUSES:
            raise ValidationFailedError(f"Cannot pay for a booking with status '{booking['status']}'")
        if booking.get("paymentStatus") == "paid":
            raise ConflictError("This booking has already been paid")
        return booking

    # ---------- online ----------

    def create_order(self, booking_id, student_id: ObjectId) -> dict:
        """
        Open a Razorpay order for a booking's total amount.

        Returns:
            {"orderId", "amount" (paise), "currency", "keyId", "receipt"}
        """
        booking = self._payable_booking(booking_id, student_id)
        amount = razorpay_client.amount_to_paise(booking["totalAmount"])
        receipt = f"receipt_{int(time.time())}_{str(booking['_id'])[-8:]}"

        order = razorpay_client.create_order(
            amount,
            receipt,
            notes={
                "userId": str(student_id),
                "bookingId": str(booking["_id"]),
                "propertyId": str(booking["room"]),
            },
        )

        now = datetime.utcnow()
        self.collection.insert_one({
            "orderId": order["id"],
            "paymentId": None,
            "signature": None,
            "amount": amount,
            "currency": order.get("currency", "INR"),
            "status": "created",
            "method": "razorpay",
            "userId": student_id,
            "bookingId": booking["_id"],
            "propertyId": booking["room"],
            "receipt": receipt,
            "description": "Payment for booking",
            "createdAt": now,
            "updatedAt": now,
        })
        log.info("Payment order %s created for booking %s", order["id"], booking["_id"])
        return {
            "orderId": order["id"],
            "amount": amount,
            "currency": order.get("currency", "INR"),
            "keyId": settings.razorpay_key_id,
            "receipt": receipt,
        }

    def verify(self, user_id: ObjectId, order_id: str, payment_id: str, signature: str) -> dict:
        """
        Verify the checkout signature and settle the booking.

        Raises:
            NotFoundError: unknown order
            ValidationFailedError: signature mismatch (transaction marked failed)
        """
        transaction = self.collection.find_one({"orderId": order_id})
        if not transaction:
            raise NotFoundError("Transaction not found")
        if not same_id(transaction["userId"], user_id):
            raise PermissionDeniedError("You do not have access to this transaction")
        if transaction["status"] == "captured":
            return serialize_doc(transaction)

        now = datetime.utcnow()
        if not razorpay_client.verify_signature(order_id, payment_id, signature):
            self.collection.update_one(
                {"_id": transaction["_id"]},
                {"$set": {"status": "failed", "paymentId": payment_id, "updatedAt": now,
                          "failureReason": "Signature verification failed"}},
            )
            log.warning("Payment signature mismatch for order %s", order_id)
            raise ValidationFailedError("Payment verification failed")

        self.collection.update_one(
            {"_id": transaction["_id"]},
            {"$set": {"status": "captured", "paymentId": payment_id, "signature": signature,
                      "capturedAt": now, "updatedAt": now}},
        )
        if transaction.get("bookingId"):
            booking = self.bookings.get(transaction["bookingId"])
            if booking:
                self.bookings.mark_paid(booking, {
                    "method": "razorpay",
                    "orderId": order_id,
                    "paymentId": payment_id,
                    "amount": transaction["amount"] / 100,
                })
        log.info("Payment %s captured for order %s", payment_id, order_id)
        return serialize_doc(self.collection.find_one({"_id": transaction["_id"]}))

    # ---------- offline ----------

    def confirm_offline(self, student_id: ObjectId, data: dict) -> dict:
        """Student reports a cash / UPI / bank transfer payment."""
        booking = self._payable_booking(data["bookingId"], student_id)
        if booking.get("paymentStatus") == "pending_confirmation":
            raise ConflictError("Payment is already awaiting owner confirmation")
        self.bookings.mark_payment_submitted(booking, {
            "method": data["paymentMethod"],
            "transactionId": data.get("transactionId"),
            "notes": data.get("notes"),
            "amount": booking["totalAmount"],
            "submittedAt": datetime.utcnow(),
        })
        log.info("Offline payment reported for booking %s", booking["_id"])
        return serialize_doc(self.bookings.require(booking["_id"]))

    def pending_for_owner(self, owner_id: ObjectId) -> List[dict]:
        docs = self.bookings.collection.find(
            {"owner": owner_id, "paymentStatus": "pending_confirmation"}
        ).sort("updatedAt", -1)
        return [self.bookings.populate(doc) for doc in docs]

    def owner_confirm(self, owner_id: ObjectId, booking_id, notes: str = None) -> dict:
        booking = self.bookings.require(booking_id)
        if not same_id(booking["owner"], owner_id):
            raise PermissionDeniedError("Only the property owner can confirm this payment")
        if booking.get("paymentStatus") != "pending_confirmation":
            raise ValidationFailedError("No offline payment is awaiting confirmation for this booking")
        self.bookings.mark_paid(booking, {"confirmedBy": owner_id, "ownerNotes": notes})
        log.info("Offline payment confirmed for booking %s", booking["_id"])
        return serialize_doc(self.bookings.require(booking["_id"]))

    # ---------- history / statistics ----------

    def history(self, user_id: ObjectId, page: int = 1, limit: int = 10):
        docs, pagination = paginate(self.collection, {"userId": user_id}, page, limit, [("createdAt", -1)])
        return [serialize_doc(doc) for doc in docs], pagination

    def statistics(self, user_id: ObjectId) -> dict:
        """Totals per transaction status (amounts in rupees)."""
        breakdown: Dict[str, Dict] = {}
        total_amount = 0
        count = 0
        for doc in self.collection.find({"userId": user_id}):
            entry = breakdown.setdefault(doc["status"], {"count": 0, "amount": 0})
            entry["count"] += 1
            entry["amount"] += doc["amount"] / 100
            total_amount += doc["amount"] / 100
            count += 1
        captured = breakdown.get("captured", {"count": 0, "amount": 0})
        return {
            "totalCount": count,
            "totalAmount": total_amount,
            "paidAmount": captured["amount"],
            "paidCount": captured["count"],
            "averageAmount": round(total_amount / count, 2) if count else 0,
            "statusBreakdown": breakdown,
        }
