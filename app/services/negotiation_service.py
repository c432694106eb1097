"""
Negotiation Service - price offers between a student and a room owner.

    pending | countered --owner accept--> accepted (finalPrice = counterOffer or proposedPrice)
    pending | countered --owner reject--> rejected
    pending | countered --owner counter--> countered (expiry reset to 3 days)
    countered --student accept--> accepted (finalPrice = counterOffer)
    countered --student reject--> rejected
    pending | countered --student withdraw--> withdrawn
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import round_half_up, same_id, serialize_doc, to_object_id
from app.services.room_service import RoomService

log = get_logger(__name__)

OFFER_VALID_DAYS = 7
COUNTER_VALID_DAYS = 3
ACTIONABLE_STATUSES = ["pending", "countered"]


def effective_price(negotiation: dict) -> float:
    """Price the student would pay if this negotiation closes now."""
    if negotiation.get("finalPrice") is not None:
        return negotiation["finalPrice"]
    if negotiation.get("counterOffer") is not None:
        return negotiation["counterOffer"]
    return negotiation["proposedPrice"]


def with_derived_fields(negotiation: dict, now: Optional[datetime] = None) -> dict:
    """
    Add isExpired, discountPercentage, savingsAmount and isActionable.

    Works on a raw document and returns a serialized copy.
    """
    now = now or datetime.utcnow()
    doc = serialize_doc(dict(negotiation))
    original = negotiation["originalPrice"]
    price = effective_price(negotiation)
    expires_at = negotiation.get("expiresAt")

    doc["isExpired"] = bool(expires_at and expires_at < now and negotiation["status"] in ACTIONABLE_STATUSES)
    doc["savingsAmount"] = max(original - price, 0)
    doc["discountPercentage"] = round_half_up((original - price) / original * 100) if original else 0
    doc["isActionable"] = negotiation["status"] in ACTIONABLE_STATUSES and not doc["isExpired"]
    return doc


class NegotiationService:
    """Handles negotiation documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["negotiations"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.rooms = RoomService()

    def require(self, negotiation_id) -> dict:
        negotiation = self.collection.find_one({"_id": to_object_id(negotiation_id, "negotiationId")})
        if not negotiation:
            raise NotFoundError("Negotiation not found")
        return negotiation

    def require_participant(self, negotiation_id, user_id: ObjectId) -> dict:
        negotiation = self.require(negotiation_id)
        if not (same_id(negotiation["student"], user_id) or same_id(negotiation["owner"], user_id)):
            raise PermissionDeniedError("You do not have access to this negotiation")
        return negotiation

    # ---------- create ----------

    def create(self, student_id: ObjectId, data: dict) -> dict:
        """
        Open a price negotiation on a room.

        Raises:
            NotFoundError: unknown room
            ValidationFailedError: own property, duplicate open offer, offer not below price
        """
        room = self.rooms.require(data["roomId"])
        if same_id(room["owner"], student_id):
            raise ValidationFailedError("You cannot negotiate on your own property")

        existing = self.collection.find_one({
            "room": room["_id"],
            "student": student_id,
            "status": {"$in": ACTIONABLE_STATUSES},
        })
        if existing:
            raise ValidationFailedError("You already have an active negotiation for this room")

        proposed = data["proposedPrice"]
        if proposed >= room["price"]:
            raise ValidationFailedError("Proposed price must be lower than the current price")

        now = datetime.utcnow()
        doc = {
            "room": room["_id"],
            "student": student_id,
            "owner": room["owner"],
            "originalPrice": room["price"],
            "proposedPrice": proposed,
            "counterOffer": None,
            "finalPrice": None,
            "message": data.get("message"),
            "ownerResponse": None,
            "counterMessage": None,
            "status": "pending",
            "responseDate": None,
            "expiresAt": now + timedelta(days=OFFER_VALID_DAYS),
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Negotiation %s opened on room %s at %s", doc["_id"], room["_id"], proposed)
        return doc

    # ---------- transitions ----------

    def _check_open(self, negotiation: dict, allowed: List[str]) -> None:
        if negotiation["status"] not in allowed:
            raise ValidationFailedError(
                f"Cannot respond to a negotiation with status '{negotiation['status']}'"
            )
        expires_at = negotiation.get("expiresAt")
        if expires_at and expires_at < datetime.utcnow():
            raise ValidationFailedError("This negotiation has expired")

    def _save(self, negotiation: dict, updates: Dict) -> dict:
        now = datetime.utcnow()
        updates["updatedAt"] = now
        if updates.get("status", "pending") != "pending" and not negotiation.get("responseDate"):
            updates["responseDate"] = now
        self.collection.update_one({"_id": negotiation["_id"]}, {"$set": updates})
        return self.require(negotiation["_id"])

    def owner_respond(self, negotiation_id, owner_id: ObjectId, data: dict) -> dict:
        """Owner accepts, rejects or counters an offer."""
        negotiation = self.require(negotiation_id)
        if not same_id(negotiation["owner"], owner_id):
            raise PermissionDeniedError("Only the property owner can respond to this negotiation")
        self._check_open(negotiation, ACTIONABLE_STATUSES)

        action = data["action"]
        message = data.get("message")
        if action == "accept":
            updates = {
                "status": "accepted",
                "finalPrice": negotiation.get("counterOffer") or negotiation["proposedPrice"],
                "ownerResponse": message,
            }
        elif action == "reject":
            updates = {"status": "rejected", "ownerResponse": message}
        else:
            counter = data.get("counterOffer")
            if counter is None:
                raise ValidationFailedError("counterOffer is required to counter")
            if not negotiation["proposedPrice"] <= counter <= negotiation["originalPrice"]:
                raise ValidationFailedError(
                    "Counter offer must be between the proposed price and the original price"
                )
            updates = {
                "status": "countered",
                "counterOffer": counter,
                "counterMessage": message,
                "expiresAt": datetime.utcnow() + timedelta(days=COUNTER_VALID_DAYS),
            }

        log.info("Negotiation %s: owner %s", negotiation["_id"], action)
        return self._save(negotiation, updates)

    def student_respond(self, negotiation_id, student_id: ObjectId, data: dict) -> dict:
        """Student accepts or rejects the owner's counter offer."""
        negotiation = self.require(negotiation_id)
        if not same_id(negotiation["student"], student_id):
            raise PermissionDeniedError("Only the student who made the offer can respond")
        self._check_open(negotiation, ["countered"])

        if data["action"] == "accept":
            updates = {"status": "accepted", "finalPrice": negotiation["counterOffer"]}
        else:
            updates = {"status": "rejected"}
        if data.get("message"):
            updates["message"] = data["message"]

        log.info("Negotiation %s: student %s counter", negotiation["_id"], data["action"])
        return self._save(negotiation, updates)

    def withdraw(self, negotiation_id, student_id: ObjectId) -> dict:
        negotiation = self.require(negotiation_id)
        if not same_id(negotiation["student"], student_id):
            raise PermissionDeniedError("Only the student who made the offer can withdraw it")
        if negotiation["status"] not in ACTIONABLE_STATUSES:
            raise ValidationFailedError(
                f"Cannot withdraw a negotiation with status '{negotiation['status']}'"
            )
        return self._save(negotiation, {"status": "withdrawn"})

    # ---------- listing ----------

    def _with_details(self, negotiation: dict, user_id: ObjectId) -> dict:
        doc = with_derived_fields(negotiation)
        is_student = same_id(negotiation["student"], user_id)
        doc["userRole"] = "student" if is_student else "owner"

        room = self.rooms.collection.find_one(
            {"_id": negotiation["room"]}, {"title": 1, "location": 1, "images": 1, "price": 1}
        )
        doc["room"] = serialize_doc(room) if room else {"_id": str(negotiation["room"])}
        counterparty_id = negotiation["owner"] if is_student else negotiation["student"]
        counterparty = self.users.find_one(
            {"_id": counterparty_id}, {"fullName": 1, "email": 1, "phone": 1, "profilePhoto": 1}
        )
        doc["counterparty"] = serialize_doc(counterparty)
        return doc

    def list_for_user(self, user: dict, role: str = "auto", status: Optional[str] = None) -> dict:
        """
        Negotiations the caller takes part in.

        role: student (offers made), owner (offers received) or auto (both)
        """
        user_id = user["_id"]
        if role == "student":
            query: Dict = {"student": user_id}
        elif role == "owner":
            query = {"owner": user_id}
        else:
            query = {"$or": [{"student": user_id}, {"owner": user_id}]}
        if status:
            query["status"] = status

        docs = list(self.collection.find(query).sort("createdAt", -1))
        items = [self._with_details(doc, user_id) for doc in docs]

        accepted = [item for item in items if item["status"] == "accepted"]
        summary = {
            "total": len(items),
            "asStudent": sum(1 for item in items if item["userRole"] == "student"),
            "asOwner": sum(1 for item in items if item["userRole"] == "owner"),
            "pending": sum(1 for item in items if item["status"] == "pending"),
            "accepted": len(accepted),
            "rejected": sum(1 for item in items if item["status"] == "rejected"),
            "countered": sum(1 for item in items if item["status"] == "countered"),
            "totalSavings": sum(item["savingsAmount"] for item in accepted),
            "avgDiscount": (
                round_half_up(sum(item["discountPercentage"] for item in accepted) / len(accepted))
                if accepted else 0
            ),
        }
        return {"negotiations": items, "summary": summary}

    def detail(self, negotiation_id, user_id: ObjectId) -> dict:
        return self._with_details(self.require_participant(negotiation_id, user_id), user_id)
