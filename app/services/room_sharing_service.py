"""
Room Sharing Service - students with a booked room looking for roommates.

A share embeds its applications, confirmed participants and "interested"
bookmarks. Status: active -> full (capacity reached) / completed
(deactivated) / cancelled (by initiator or cleanup).
"""

import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.compatibility import compatibility_score
from app.services.mongo_service import paginate, round_half_up, same_id, serialize_doc, to_datetime, to_object_id
from app.services.room_service import RoomService

log = get_logger(__name__)

UPDATABLE_FIELDS = ("description", "houseRules", "requirements", "availableTill")
PERSON_FIELDS = {"fullName": 1, "email": 1, "profilePhoto": 1, "collegeName": 1, "course": 1}


def confirmed_participants(share: dict) -> List[dict]:
    return [p for p in share.get("currentParticipants", []) if p.get("status") == "confirmed"]


def available_slots(share: dict) -> int:
    return max(share["maxParticipants"] - len(confirmed_participants(share)), 0)


def is_participant(share: dict, user_id) -> bool:
    return any(same_id(p["user"], user_id) for p in confirmed_participants(share))


class RoomSharingService:
    """Handles room_shares documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["room_shares"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.bookings: Collection = get_collection(COLLECTIONS["bookings"])
        self.rooms = RoomService()

    # ---------- lookup ----------

    def require(self, share_id) -> dict:
        share = self.collection.find_one({"_id": to_object_id(share_id, "shareId")})
        if not share:
            raise NotFoundError("Room share not found")
        return share

    def require_initiator(self, share_id, user_id: ObjectId) -> dict:
        share = self.require(share_id)
        if not same_id(share["initiator"], user_id):
            raise PermissionDeniedError("Only the person who created this room share can do this")
        return share

    def _person(self, user_id: ObjectId) -> dict:
        person = self.users.find_one({"_id": user_id}, PERSON_FIELDS)
        return serialize_doc(person) if person else {"_id": str(user_id)}

    def _property(self, room_id: ObjectId) -> dict:
        room = self.rooms.collection.find_one(
            {"_id": room_id},
            {"title": 1, "location": 1, "images": 1, "price": 1, "roomType": 1, "amenities": 1, "status": 1},
        )
        return serialize_doc(room) if room else {"_id": str(room_id)}

    def populate(self, share: dict) -> dict:
        doc = serialize_doc(share)
        doc["property"] = self._property(share["property"])
        doc["initiator"] = self._person(share["initiator"])
        doc["availableSlots"] = available_slots(share)
        doc["isFull"] = doc["availableSlots"] == 0
        return doc

    # ---------- create / update ----------

    def create(self, student_id: ObjectId, data: dict) -> dict:
        """
        Start looking for roommates for a room the student has booked.

        Raises:
            NotFoundError: unknown property
            ValidationFailedError: no confirmed/active booking of that property
            ConflictError: student already has an active share for it
        """
        room = self.rooms.require(data["propertyId"])
        booking = self.bookings.find_one({
            "room": room["_id"],
            "student": student_id,
            "status": {"$in": ["confirmed", "active"]},
        })
        if not booking:
            raise ValidationFailedError("You can only share a room you have a confirmed booking for")

        if self.collection.find_one({
            "property": room["_id"], "initiator": student_id, "status": {"$in": ["active", "full"]}
        }):
            raise ConflictError("You already have an active room share for this property")

        max_participants = data["maxParticipants"]
        monthly_rent = booking.get("monthlyRent") or room["price"]
        deposit = booking.get("securityDeposit") or room.get("securityDeposit", 0)
        now = datetime.utcnow()
        doc = {
            "property": room["_id"],
            "initiator": student_id,
            "maxParticipants": max_participants,
            "currentParticipants": [{"user": student_id, "status": "confirmed", "joinedAt": now}],
            "applications": [],
            "interested": [],
            "costSharing": {
                "monthlyRent": monthly_rent,
                "rentPerPerson": round_half_up(monthly_rent / max_participants),
                "securityDeposit": deposit,
                "depositPerPerson": round_half_up(deposit / max_participants),
            },
            "description": data["description"],
            "houseRules": data.get("houseRules", []),
            "requirements": data.get("requirements") or {"gender": "any", "preferences": []},
            "availableFrom": to_datetime(data.get("availableFrom")) or booking["moveInDate"],
            "availableTill": to_datetime(data.get("availableTill")) or booking.get("moveOutDate"),
            "views": 0,
            "status": "active",
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Room share %s created for room %s", doc["_id"], room["_id"])
        return doc

    def update(self, share_id, user_id: ObjectId, fields: dict) -> dict:
        share = self.require_initiator(share_id, user_id)
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        if not updates:
            raise ValidationFailedError("No fields to update")
        if "availableTill" in updates:
            updates["availableTill"] = to_datetime(updates["availableTill"])
        updates["updatedAt"] = datetime.utcnow()
        self.collection.update_one({"_id": share["_id"]}, {"$set": updates})
        return self.require(share["_id"])

    def _close(self, share: dict, status: str, reason: str) -> dict:
        now = datetime.utcnow()
        self.collection.update_one(
            {"_id": share["_id"]},
            {"$set": {"status": status, "completionReason": reason, "completedAt": now, "updatedAt": now}},
        )
        log.info("Room share %s %s: %s", share["_id"], status, reason)
        return self.require(share["_id"])

    def cancel(self, share_id, user_id: ObjectId) -> dict:
        share = self.require_initiator(share_id, user_id)
        if share["status"] in ("cancelled", "completed"):
            raise ValidationFailedError(f"Room share is already {share['status']}")
        return self._close(share, "cancelled", "Cancelled by initiator")

    def deactivate(self, share_id, user_id: ObjectId) -> dict:
        share = self.require_initiator(share_id, user_id)
        if share["status"] not in ("active", "full"):
            raise ValidationFailedError(f"Room share is already {share['status']}")
        return self._close(share, "completed", "Deactivated by initiator")

    # ---------- browse ----------

    def list_active(self, filters: Dict, page: int = 1, limit: int = 10):
        query: Dict = {"status": "active"}
        if filters.get("city"):
            room_ids = [
                room["_id"] for room in self.rooms.collection.find(
                    {"location.city": {"$regex": f"^{re.escape(filters['city'])}$", "$options": "i"}}, {"_id": 1}
                )
            ]
            query["property"] = {"$in": room_ids}
        if filters.get("maxRent") is not None:
            query["costSharing.rentPerPerson"] = {"$lte": filters["maxRent"]}
        if filters.get("gender"):
            query["requirements.gender"] = {"$in": [filters["gender"], "any"]}

        docs, pagination = paginate(self.collection, query, page, limit, [("createdAt", -1)])
        return [self.populate(doc) for doc in docs], pagination

    def detail(self, share_id, viewer: Optional[dict] = None) -> dict:
        """Share detail; counts a view for everyone except the initiator."""
        share = self.require(share_id)
        if not viewer or not same_id(viewer["_id"], share["initiator"]):
            self.collection.update_one({"_id": share["_id"]}, {"$inc": {"views": 1}})
            share["views"] = share.get("views", 0) + 1

        doc = self.populate(share)
        doc["currentParticipants"] = [
            {**serialize_doc(p), "user": self._person(p["user"])} for p in confirmed_participants(share)
        ]
        if viewer:
            doc["userContext"] = self.user_context(share, viewer)
        return doc

    def user_context(self, share: dict, viewer: dict) -> dict:
        user_id = viewer["_id"]
        application = next(
            (app for app in reversed(share.get("applications", [])) if same_id(app["applicant"], user_id)),
            None,
        )
        initiator = self.users.find_one({"_id": share["initiator"]}, {"compatibilityAssessment": 1}) or {}
        return {
            "hasApplied": application is not None,
            "applicationStatus": application["status"] if application else None,
            "isParticipant": is_participant(share, user_id),
            "isInitiator": same_id(share["initiator"], user_id),
            "hasInterest": any(same_id(item["user"], user_id) for item in share.get("interested", [])),
            "compatibilityScore": compatibility_score(
                viewer.get("compatibilityAssessment"), initiator.get("compatibilityAssessment")
            ),
        }

    def my_shares(self, user_id: ObjectId) -> dict:
        initiated = self.collection.find({"initiator": user_id}).sort("createdAt", -1)
        joined = self.collection.find({
            "initiator": {"$ne": user_id},
            "currentParticipants": {"$elemMatch": {"user": user_id, "status": "confirmed"}},
        }).sort("createdAt", -1)
        return {
            "initiated": [self.populate(doc) for doc in initiated],
            "joined": [self.populate(doc) for doc in joined],
        }

    # ---------- applications ----------

    def apply(self, share_id, student_id: ObjectId, message: Optional[str] = None) -> dict:
        """
        Apply to join a share.

        Raises:
            ValidationFailedError: share not active, own share, already a participant
            ConflictError: a pending application already exists
        """
        share = self.require(share_id)
        if share["status"] != "active":
            raise ValidationFailedError("This room share is not accepting applications")
        if same_id(share["initiator"], student_id):
            raise ValidationFailedError("You cannot apply to your own room share")
        if is_participant(share, student_id):
            raise ValidationFailedError("You are already a participant of this room share")
        if any(
            same_id(app["applicant"], student_id) and app["status"] == "pending"
            for app in share.get("applications", [])
        ):
            raise ConflictError("You have already applied to this room share")

        application = {
            "_id": ObjectId(),
            "applicant": student_id,
            "message": message,
            "status": "pending",
            "appliedAt": datetime.utcnow(),
            "respondedAt": None,
            "responseMessage": None,
        }
        self.collection.update_one(
            {"_id": share["_id"]},
            {"$push": {"applications": application}, "$set": {"updatedAt": datetime.utcnow()}},
        )
        log.info("Application %s to room share %s", application["_id"], share["_id"])
        return application

    def withdraw(self, share_id, student_id: ObjectId) -> None:
        share = self.require(share_id)
        application = next(
            (app for app in share.get("applications", [])
             if same_id(app["applicant"], student_id) and app["status"] == "pending"),
            None,
        )
        if not application:
            raise NotFoundError("No pending application found")
        self.collection.update_one(
            {"_id": share["_id"]},
            {"$pull": {"applications": {"_id": application["_id"]}}, "$set": {"updatedAt": datetime.utcnow()}},
        )

    def respond(self, share_id, user_id: ObjectId, application_id, status: str, message: Optional[str] = None) -> dict:
        """Initiator accepts or rejects an application."""
        share = self.require_initiator(share_id, user_id)
        applications = share.get("applications", [])
        application = next((app for app in applications if same_id(app["_id"], application_id)), None)
        if not application:
            raise NotFoundError("Application not found")
        if application["status"] != "pending":
            raise ValidationFailedError("Application has already been processed")

        now = datetime.utcnow()
        participants = share.get("currentParticipants", [])
        share_status = share["status"]
        if status == "accepted":
            if available_slots(share) == 0:
                raise ConflictError("Room share is already full")
            participants.append({"user": application["applicant"], "status": "confirmed", "joinedAt": now})
            if len([p for p in participants if p["status"] == "confirmed"]) >= share["maxParticipants"]:
                share_status = "full"

        application.update(status=status, respondedAt=now, responseMessage=message)
        self.collection.update_one(
            {"_id": share["_id"]},
            {"$set": {
                "applications": applications,
                "currentParticipants": participants,
                "status": share_status,
                "updatedAt": now,
            }},
        )
        log.info("Application %s %s", application["_id"], status)
        return self.require(share["_id"])

    def _application_item(self, share: dict, application: dict, direction: str) -> dict:
        item = serialize_doc(application)
        item["shareId"] = str(share["_id"])
        item["shareStatus"] = share["status"]
        item["direction"] = direction
        item["property"] = self._property(share["property"])
        item["applicant"] = self._person(application["applicant"])
        item["initiator"] = self._person(share["initiator"])
        return item

    def list_applications(self, user_id: ObjectId, kind: str = "all", status: Optional[str] = None) -> List[dict]:
        """Flattened applications sent by, or received by, the caller."""
        items = []
        if kind in ("sent", "all"):
            for share in self.collection.find({"applications.applicant": user_id}):
                for app in share["applications"]:
                    if same_id(app["applicant"], user_id):
                        items.append(self._application_item(share, app, "sent"))
        if kind in ("received", "all"):
            for share in self.collection.find({"initiator": user_id}):
                for app in share.get("applications", []):
                    items.append(self._application_item(share, app, "received"))
        if status:
            items = [item for item in items if item["status"] == status]
        items.sort(key=lambda item: item["appliedAt"], reverse=True)
        return items

    def application_detail(self, share_id, application_id, user_id: ObjectId) -> dict:
        share = self.require(share_id)
        application = next(
            (app for app in share.get("applications", []) if same_id(app["_id"], application_id)), None
        )
        if not application:
            raise NotFoundError("Application not found")
        if same_id(application["applicant"], user_id):
            direction = "sent"
        elif same_id(share["initiator"], user_id):
            direction = "received"
        else:
            raise PermissionDeniedError("You do not have access to this application")
        return self._application_item(share, application, direction)

    # ---------- interest ----------

    def interested_shares(self, user_id: ObjectId) -> List[dict]:
        docs = self.collection.find({"interested.user": user_id}).sort("updatedAt", -1)
        return [self.populate(doc) for doc in docs]

    def add_interest(self, share_id, user_id: ObjectId) -> bool:
        """Returns False when the caller had already marked interest."""
        share = self.require(share_id)
        if same_id(share["initiator"], user_id):
            raise ValidationFailedError("You cannot mark interest in your own room share")
        if any(same_id(item["user"], user_id) for item in share.get("interested", [])):
            return False
        self.collection.update_one(
            {"_id": share["_id"]},
            {"$push": {"interested": {"user": user_id, "addedAt": datetime.utcnow()}}},
        )
        return True

    def remove_interest(self, share_id, user_id: ObjectId) -> bool:
        share = self.require(share_id)
        result = self.collection.update_one(
            {"_id": share["_id"]}, {"$pull": {"interested": {"user": user_id}}}
        )
        return result.modified_count > 0

    # ---------- statistics / cleanup ----------

    def statistics(self, user_id: Optional[ObjectId] = None) -> dict:
        shares = list(self.collection.find({}))
        active = [s for s in shares if s["status"] == "active"]
        rents = [s["costSharing"]["rentPerPerson"] for s in active if s.get("costSharing")]

        gender_counts: Dict[str, int] = {}
        city_counts: Dict[str, int] = {}
        for share in active:
            gender = (share.get("requirements") or {}).get("gender", "any")
            gender_counts[gender] = gender_counts.get(gender, 0) + 1
            room = self.rooms.collection.find_one({"_id": share["property"]}, {"location.city": 1})
            city = (room or {}).get("location", {}).get("city")
            if city:
                city_counts[city] = city_counts.get(city, 0) + 1

        stats = {
            "total": len(shares),
            "active": len(active),
            "full": sum(1 for s in shares if s["status"] == "full"),
            "completed": sum(1 for s in shares if s["status"] == "completed"),
            "totalParticipants": sum(len(confirmed_participants(s)) for s in shares),
            "pendingApplications": sum(
                1 for s in shares for app in s.get("applications", []) if app["status"] == "pending"
            ),
            "rentPerPerson": {
                "min": min(rents) if rents else 0,
                "max": max(rents) if rents else 0,
                "avg": round_half_up(sum(rents) / len(rents)) if rents else 0,
            },
            "genderPreferences": gender_counts,
            "topCities": [
                {"city": city, "count": count}
                for city, count in sorted(city_counts.items(), key=lambda item: item[1], reverse=True)[:5]
            ],
        }

        if user_id is not None:
            applied = [
                app for s in shares for app in s.get("applications", []) if same_id(app["applicant"], user_id)
            ]
            stats["userStats"] = {
                "created": sum(1 for s in shares if same_id(s["initiator"], user_id)),
                "joined": sum(
                    1 for s in shares if not same_id(s["initiator"], user_id) and is_participant(s, user_id)
                ),
                "applied": len(applied),
                "pendingApplications": sum(1 for app in applied if app["status"] == "pending"),
            }
        return stats

    def _cleanup_reason(self, share: dict) -> Optional[str]:
        room = self.rooms.collection.find_one({"_id": share["property"]})
        if not room:
            return "Property no longer exists"
        if room.get("status") != "active":
            return f"Property status changed to {room.get('status')}"
        initiator_booking = self.bookings.find_one({
            "room": room["_id"], "student": share["initiator"], "status": {"$in": ["confirmed", "active"]},
        })
        if room.get("availability", {}).get("availableRooms", 0) == 0 and not initiator_booking:
            return "Property fully booked"
        return None

    def cleanup(self, days_inactive: Optional[int] = None, force: bool = False) -> dict:
        """
        Cancel active shares whose property went away, went inactive or got fully booked.

        Args:
            days_inactive: only look at shares not updated for this many days (None = all)
            force: cancel every active share regardless of age or property state
        """
        query: Dict = {"status": "active"}
        cutoff = None
        if days_inactive is not None and not force:
            cutoff = datetime.utcnow() - timedelta(days=days_inactive)
            query["updatedAt"] = {"$lt": cutoff}

        results = []
        shares = list(self.collection.find(query))
        for share in shares:
            reason = "Manual cleanup triggered" if force else self._cleanup_reason(share)
            if not reason:
                continue
            self._close(share, "cancelled", reason)
            results.append({"shareId": str(share["_id"]), "reason": reason, "lastUpdated": share.get("updatedAt")})

        return {
            "totalChecked": len(shares),
            "deactivated": len(results),
            "cutoffDate": cutoff,
            "results": results,
        }
