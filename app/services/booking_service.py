"""
Booking Service - reservations of rooms by students.

Lifecycle (status):
    pending -> confirmed -> active -> completed
    pending -> rejected
    pending | confirmed -> cancelled

Creating a booking takes one slot from the room; reject, cancel and
complete give it back. A student may hold only one open booking
(pending / confirmed / active, moving out in the future, payment not failed).
"""

import calendar
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import paginate, same_id, serialize_doc, to_datetime, to_object_id
from app.services.room_service import RoomService

log = get_logger(__name__)

OPEN_STATUSES = ["pending", "confirmed", "active"]
CURRENT_STATUSES = OPEN_STATUSES
MAX_EXTENSION_MONTHS = 12
EXPIRING_WITHIN_DAYS = 30

TIMEFRAMES = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def add_months(start: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day is clamped to the end of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def booking_role(booking: dict, user_id) -> Optional[str]:
    """'student' / 'owner' for participants, None otherwise."""
    if same_id(booking.get("student"), user_id):
        return "student"
    if same_id(booking.get("owner"), user_id):
        return "owner"
    return None


class BookingService:
    """Handles booking documents and their room side effects."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["bookings"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.negotiations: Collection = get_collection(COLLECTIONS["negotiations"])
        self.rooms = RoomService()

        self._actions: Dict[str, Callable] = {
            "approve": self._approve,
            "confirm": self._approve,
            "reject": self._reject,
            "cancel": self._cancel,
            "activate": self._activate,
            "check_in": self._activate,
            "complete": self._complete,
            "check_out": self._complete,
            "request_extension": self._request_extension,
            "approve_extension": self._approve_extension,
            "reject_extension": self._reject_extension,
        }

    # ---------- lookup ----------

    def get(self, booking_id) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(booking_id, "bookingId")})

    def require(self, booking_id) -> dict:
        booking = self.get(booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def require_participant(self, booking_id, user_id: ObjectId) -> dict:
        booking = self.require(booking_id)
        if not booking_role(booking, user_id):
            raise PermissionDeniedError("You do not have access to this booking")
        return booking

    def find_open_booking(self, student_id: ObjectId) -> Optional[dict]:
        """The student's current booking, if any."""
        return self.collection.find_one({
            "student": student_id,
            "status": {"$in": OPEN_STATUSES},
            "moveOutDate": {"$gt": datetime.utcnow()},
            "paymentStatus": {"$ne": "failed"},
        })

    def accepted_price(self, room_id: ObjectId, student_id: ObjectId) -> Optional[float]:
        """Final price of an accepted negotiation for this room, if the student has one."""
        negotiation = self.negotiations.find_one(
            {"room": room_id, "student": student_id, "status": "accepted"},
            sort=[("responseDate", -1)],
        )
        if negotiation:
            return negotiation.get("finalPrice") or negotiation.get("proposedPrice")
        return None

    # ---------- create ----------

    def create(self, student_id: ObjectId, data: dict) -> dict:
        """
        Book a room.

        Args:
            student_id: booking student's _id
            data: validated BookingCreate dump

        Raises:
            ValidationFailedError: move-in date in the past
            NotFoundError: room does not exist
            ConflictError: room unavailable or student already has a booking
        """
        move_in = to_datetime(data["moveInDate"])
        today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        if move_in < today:
            raise ValidationFailedError("Move-in date cannot be in the past")

        room = self.rooms.require(data["roomId"])
        if same_id(room["owner"], student_id):
            raise ValidationFailedError("You cannot book your own property")

        availability = room.get("availability", {})
        if (
            room.get("status") != "active"
            or not availability.get("isAvailable")
            or availability.get("availableRooms", 0) <= 0
        ):
            raise ConflictError("Room is not available for booking")

        existing = self.find_open_booking(student_id)
        if existing:
            raise ConflictError(
                "You already have an active booking. Students can only book one room at a time.",
                currentBookingId=str(existing["_id"]),
            )

        monthly_rent = self.accepted_price(room["_id"], student_id) or room["price"]
        security_deposit = data.get("securityDeposit")
        if security_deposit is None:
            security_deposit = room.get("securityDeposit") or monthly_rent
        maintenance = data.get("maintenanceCharges")
        if maintenance is None:
            maintenance = room.get("maintenanceCharges", 0)

        # Atomic: fails if another booking took the last slot meanwhile
        self.rooms.reserve_slot(room["_id"])

        now = datetime.utcnow()
        doc = {
            "room": room["_id"],
            "student": student_id,
            "owner": room["owner"],
            "moveInDate": move_in,
            "moveOutDate": add_months(move_in, data["duration"]),
            "duration": data["duration"],
            "monthlyRent": monthly_rent,
            "securityDeposit": security_deposit,
            "maintenanceCharges": maintenance,
            "totalAmount": monthly_rent + security_deposit + maintenance,
            "status": "pending",
            "paymentStatus": "pending",
            "paymentDetails": {},
            "agreementType": data.get("agreementType", "monthly"),
            "studentNotes": data.get("notes"),
            "ownerNotes": None,
            "extensionRequests": [],
            "studentReviewSubmitted": False,
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Booking %s created for room %s by student %s", doc["_id"], room["_id"], student_id)
        return doc

    def validate(self, student_id: ObjectId, room_id) -> dict:
        """Pre-flight check used by the booking form."""
        room = self.rooms.require(room_id)
        availability = room.get("availability", {})
        result = {
            "canBook": True,
            "reason": None,
            "room": {
                "_id": str(room["_id"]),
                "title": room.get("title"),
                "price": room.get("price"),
                "availableRooms": availability.get("availableRooms", 0),
            },
        }

        if (
            room.get("status") != "active"
            or not availability.get("isAvailable")
            or availability.get("availableRooms", 0) <= 0
        ):
            result.update(canBook=False, reason="Room is not available for booking")
            return result

        existing = self.find_open_booking(student_id)
        if existing:
            same_room = same_id(existing["room"], room["_id"])
            result.update(
                canBook=False,
                reason=(
                    "You already have a booking for this room"
                    if same_room
                    else "You already have an active booking. Students can only book one room at a time."
                ),
                existingBooking={
                    "_id": str(existing["_id"]),
                    "status": existing["status"],
                    "room": str(existing["room"]),
                },
            )
        return result

    # ---------- listing ----------

    def populate(self, booking: dict) -> dict:
        """Replace room / student / owner ids with short summaries."""
        doc = serialize_doc(booking)
        room = self.rooms.collection.find_one(
            {"_id": booking["room"]},
            {"title": 1, "location": 1, "images": 1, "price": 1, "roomType": 1},
        )
        doc["room"] = serialize_doc(room) if room else {"_id": str(booking["room"])}
        for field in ("student", "owner"):
            person = self.users.find_one(
                {"_id": booking[field]}, {"fullName": 1, "email": 1, "phone": 1, "profilePhoto": 1}
            )
            doc[field] = serialize_doc(person) if person else {"_id": str(booking[field])}
        return doc

    def list_for_user(self, user: dict, status: Optional[str] = None, page: int = 1, limit: int = 10):
        """Role-scoped list; status 'active' means confirmed or active."""
        query: Dict = {"student" if user["role"] == "student" else "owner": user["_id"]}
        if status == "active":
            query["status"] = {"$in": ["confirmed", "active"]}
        elif status:
            query["status"] = status
        docs, pagination = paginate(self.collection, query, page, limit, [("createdAt", -1)])
        return [self.populate(doc) for doc in docs], pagination

    def my_bookings(self, student_id: ObjectId) -> dict:
        docs = list(self.collection.find({"student": student_id}).sort("createdAt", -1))
        current = [self.populate(doc) for doc in docs if doc["status"] in CURRENT_STATUSES]
        past = [self.populate(doc) for doc in docs if doc["status"] not in CURRENT_STATUSES]
        return {"current": current, "past": past, "total": len(docs)}

    # ---------- actions ----------

    def perform_action(self, booking_id, user: dict, data: dict) -> dict:
        """
        Dispatch a booking action.

        Args:
            booking_id: booking id from the URL
            user: caller's user document
            data: validated BookingActionRequest dump

        Returns:
            Updated booking document
        """
        booking = self.require_participant(booking_id, user["_id"])
        handler = self._actions.get(data["action"])
        if handler is None:
            raise ValidationFailedError(f"Invalid action: {data['action']}")

        role = booking_role(booking, user["_id"])
        updates = handler(booking, role, data)
        updates["updatedAt"] = datetime.utcnow()
        self.collection.update_one({"_id": booking["_id"]}, {"$set": updates})
        log.info("Booking %s: %s by %s", booking["_id"], data["action"], role)
        return self.require(booking["_id"])

    @staticmethod
    def _require_role(role: str, expected: str, action: str) -> None:
        if role != expected:
            raise PermissionDeniedError(f"Only the {expected} can {action} this booking")

    @staticmethod
    def _require_status(booking: dict, allowed: List[str], action: str) -> None:
        if booking["status"] not in allowed:
            raise ValidationFailedError(f"Cannot {action} a booking with status '{booking['status']}'")

    def _approve(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "owner", "approve")
        self._require_status(booking, ["pending"], "approve")
        updates = {"status": "confirmed", "confirmedAt": datetime.utcnow()}
        if data.get("notes"):
            updates["ownerNotes"] = data["notes"]
        return updates

    def _reject(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "owner", "reject")
        self._require_status(booking, ["pending"], "reject")
        if not data.get("reason"):
            raise ValidationFailedError("Rejection reason is required")
        self.rooms.release_slot(booking["room"])
        return {
            "status": "rejected",
            "rejectedAt": datetime.utcnow(),
            "cancellationReason": data["reason"],
            "cancelledBy": booking["owner"],
        }

    def _cancel(self, booking: dict, role: str, data: dict) -> dict:
        self._require_status(booking, ["pending", "confirmed"], "cancel")
        if not data.get("reason"):
            raise ValidationFailedError("Cancellation reason is required")
        self.rooms.release_slot(booking["room"])
        updates = {
            "status": "cancelled",
            "cancelledAt": datetime.utcnow(),
            "cancellationReason": data["reason"],
            "cancelledBy": booking[role],
        }
        if data.get("refundAmount"):
            updates["refundAmount"] = data["refundAmount"]
            updates["refundStatus"] = "pending"
        return updates

    def _activate(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "owner", "check in")
        self._require_status(booking, ["confirmed"], "activate")
        return {
            "status": "active",
            "checkInDetails": {
                "actualCheckInDate": datetime.utcnow(),
                "checkInNotes": data.get("notes"),
            },
        }

    def _complete(self, booking: dict, role: str, data: dict) -> dict:
        self._require_status(booking, ["active"], "complete")
        self.rooms.release_slot(booking["room"])
        now = datetime.utcnow()
        updates = {"status": "completed", "completedAt": now}
        if role == "owner":
            updates["checkOutDetails"] = {
                "actualCheckOutDate": now,
                "checkOutNotes": data.get("notes"),
                "damageCharges": data.get("damageCharges") or 0,
                "cleaningCharges": data.get("cleaningCharges") or 0,
            }
        return updates

    def _request_extension(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "student", "extend")
        self._require_status(booking, ["active"], "extend")
        months = data.get("extensionDuration")
        if not months or months < 1 or months > MAX_EXTENSION_MONTHS:
            raise ValidationFailedError(
                f"Extension duration must be between 1 and {MAX_EXTENSION_MONTHS} months"
            )
        requests = booking.get("extensionRequests", [])
        if any(item["status"] == "pending" for item in requests):
            raise ConflictError("An extension request is already pending")
        requests.append({
            "_id": ObjectId(),
            "extensionMonths": months,
            "newMoveOutDate": add_months(booking["moveOutDate"], months),
            "reason": data.get("reason"),
            "status": "pending",
            "requestedAt": datetime.utcnow(),
        })
        return {"extensionRequests": requests}

    def _find_pending_extension(self, booking: dict, data: dict) -> dict:
        if not data.get("extensionId"):
            raise ValidationFailedError("extensionId is required")
        for item in booking.get("extensionRequests", []):
            if same_id(item["_id"], data["extensionId"]):
                if item["status"] != "pending":
                    raise ValidationFailedError("Extension request has already been processed")
                return item
        raise NotFoundError("Extension request not found")

    def _approve_extension(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "owner", "approve extensions for")
        request = self._find_pending_extension(booking, data)
        request["status"] = "approved"
        request["respondedAt"] = datetime.utcnow()
        return {
            "extensionRequests": booking["extensionRequests"],
            "duration": booking["duration"] + request["extensionMonths"],
            "moveOutDate": request["newMoveOutDate"],
        }

    def _reject_extension(self, booking: dict, role: str, data: dict) -> dict:
        self._require_role(role, "owner", "reject extensions for")
        request = self._find_pending_extension(booking, data)
        request["status"] = "rejected"
        request["respondedAt"] = datetime.utcnow()
        request["rejectionReason"] = data.get("reason")
        return {"extensionRequests": booking["extensionRequests"]}

    # ---------- payments ----------

    def mark_paid(self, booking: dict, payment_details: dict) -> None:
        """Record a completed payment; a pending booking becomes confirmed."""
        now = datetime.utcnow()
        updates = {
            "paymentStatus": "paid",
            "paymentDetails": {**booking.get("paymentDetails", {}), **payment_details, "paidAt": now},
            "updatedAt": now,
        }
        if booking["status"] == "pending":
            updates["status"] = "confirmed"
            updates["confirmedAt"] = now
        self.collection.update_one({"_id": booking["_id"]}, {"$set": updates})

    def mark_payment_submitted(self, booking: dict, payment_details: dict) -> None:
        self.collection.update_one(
            {"_id": booking["_id"]},
            {"$set": {
                "paymentStatus": "pending_confirmation",
                "paymentDetails": {**booking.get("paymentDetails", {}), **payment_details},
                "updatedAt": datetime.utcnow(),
            }},
        )

    # ---------- statistics ----------

    def statistics(self, user: dict, timeframe: str = "all") -> dict:
        """Role-scoped booking dashboard numbers."""
        query: Dict = {"student" if user["role"] == "student" else "owner": user["_id"]}
        now = datetime.utcnow()
        if timeframe in TIMEFRAMES:
            query["createdAt"] = {"$gte": now - TIMEFRAMES[timeframe]}

        bookings = list(self.collection.find(query))

        status_counts = {status: 0 for status in ["pending", "confirmed", "active", "completed", "cancelled", "rejected"]}
        for booking in bookings:
            status_counts[booking["status"]] = status_counts.get(booking["status"], 0) + 1

        paid = [b for b in bookings if b.get("paymentStatus") == "paid"]
        unpaid = [
            b for b in bookings
            if b.get("paymentStatus") in ("pending", "pending_confirmation", "partial")
            and b["status"] in OPEN_STATUSES
        ]
        durations = [b["duration"] for b in bookings if b.get("duration")]

        upcoming = sorted(
            (b for b in bookings if b["status"] == "confirmed" and b["moveInDate"] > now),
            key=lambda b: b["moveInDate"],
        )
        ongoing = [b for b in bookings if b["status"] == "active"]
        horizon = now + timedelta(days=EXPIRING_WITHIN_DAYS)
        expiring = []
        for booking in sorted(ongoing, key=lambda b: b["moveOutDate"]):
            if now <= booking["moveOutDate"] <= horizon:
                item = serialize_doc(booking)
                item["daysRemaining"] = (booking["moveOutDate"] - now).days
                expiring.append(item)

        return {
            "timeframe": timeframe,
            "total": len(bookings),
            "statusCounts": status_counts,
            "paymentStats": {
                "totalRevenue": sum(b.get("totalAmount", 0) for b in paid),
                "paidCount": len(paid),
                "pendingPayments": sum(b.get("totalAmount", 0) for b in unpaid),
                "pendingCount": len(unpaid),
            },
            "avgDuration": round(sum(durations) / len(durations), 1) if durations else 0,
            "upcoming": {"count": len(upcoming), "bookings": [serialize_doc(b) for b in upcoming[:5]]},
            "ongoing": {"count": len(ongoing)},
            "expiringSoon": expiring,
        }
