"""
Room Service - listings owned by property owners.

Room availability is tracked as availability.availableRooms out of
availability.totalRooms. Bookings take and give back slots through
reserve_slot / release_slot, both single conditional updates so two
concurrent bookings can never push the count below zero.
"""

import math
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import paginate, same_id, serialize_doc, to_datetime, to_object_id

log = get_logger(__name__)

EARTH_RADIUS_KM = 6371.0

SORT_OPTIONS = {
    "price_asc": [("price", 1)],
    "price_desc": [("price", -1)],
    "rating": [("rating", -1), ("totalReviews", -1)],
    "newest": [("createdAt", -1)],
}

OPEN_BOOKING_STATUSES = ["pending", "confirmed", "active"]


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class RoomService:
    """Handles room listings."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["rooms"])
        self.bookings: Collection = get_collection(COLLECTIONS["bookings"])

    # ---------- lookup ----------

    def get(self, room_id) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(room_id, "roomId")})

    def require(self, room_id) -> dict:
        room = self.get(room_id)
        if not room:
            raise NotFoundError("Room not found")
        return room

    def require_owned(self, room_id, owner_id: ObjectId) -> dict:
        room = self.require(room_id)
        if not same_id(room["owner"], owner_id):
            raise PermissionDeniedError("You can only manage your own properties")
        return room

    def detail(self, room_id) -> dict:
        """Public detail with a short owner summary."""
        room = self.require(room_id)
        doc = serialize_doc(room)
        owner = get_collection(COLLECTIONS["users"]).find_one(
            {"_id": room["owner"]},
            {"fullName": 1, "businessName": 1, "profilePhoto": 1, "isPhoneVerified": 1},
        )
        doc["owner"] = serialize_doc(owner) if owner else {"_id": str(room["owner"])}
        return doc

    # ---------- create / update / delete ----------

    def create(self, owner_id: ObjectId, data: dict) -> dict:
        """
        Create a listing for an owner.

        Args:
            owner_id: owner's user _id
            data: validated RoomCreate dump

        Returns:
            Stored room document
        """
        now = datetime.utcnow()
        availability = data["availability"]
        availability["availableFrom"] = to_datetime(availability.get("availableFrom")) or now
        availability["isAvailable"] = availability["isAvailable"] and availability["availableRooms"] > 0

        doc = {
            **data,
            "availability": availability,
            "owner": owner_id,
            "rating": 0,
            "totalReviews": 0,
            "totalBookings": 0,
            "status": "active",
            "isVerified": False,
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Room %s created by owner %s", doc["_id"], owner_id)
        return doc

    def update(self, room_id, owner_id: ObjectId, fields: dict) -> dict:
        """Owner-only partial update."""
        room = self.require_owned(room_id, owner_id)
        if not fields:
            raise ValidationFailedError("No fields to update")

        if "availability" in fields:
            fields["availability"] = self._merge_availability(
                room.get("availability", {}), fields["availability"] or {}
            )

        fields["updatedAt"] = datetime.utcnow()
        return self.collection.find_one_and_update(
            {"_id": room["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def _merge_availability(current: dict, changes: dict) -> dict:
        """
        Apply a partial availability change on top of the stored values.

        Changing totalRooms alone shifts availableRooms by the same delta, so
        slots held by bookings stay taken.
        """
        changes = {key: value for key, value in changes.items() if value is not None}
        total = current.get("totalRooms", 1)
        available = current.get("availableRooms", total)
        booked = total - available

        new_total = changes.get("totalRooms", total)
        if "availableRooms" in changes:
            new_available = changes["availableRooms"]
        else:
            new_available = new_total - booked
            if new_available < 0:
                raise ValidationFailedError(
                    f"totalRooms cannot be lower than the {booked} rooms already booked"
                )
        if new_available > new_total:
            raise ValidationFailedError("availableRooms cannot exceed totalRooms")

        # A room closed only because it filled up reopens when slots come back
        was_open = current.get("isAvailable", True) or available == 0
        is_open = changes.get("isAvailable", was_open)

        return {
            **current,
            "totalRooms": new_total,
            "availableRooms": new_available,
            "isAvailable": bool(is_open) and new_available > 0,
            "availableFrom": to_datetime(changes.get("availableFrom")) or current.get("availableFrom"),
        }

    def delete(self, room_id, owner_id: ObjectId) -> None:
        room = self.require_owned(room_id, owner_id)
        open_bookings = self.bookings.count_documents(
            {"room": room["_id"], "status": {"$in": OPEN_BOOKING_STATUSES}}
        )
        if open_bookings:
            raise ConflictError("Cannot delete a property with pending or active bookings")
        self.collection.delete_one({"_id": room["_id"]})
        log.info("Room %s deleted by owner %s", room["_id"], owner_id)

    def add_images(self, room_id, owner_id: ObjectId, urls: List[str]) -> dict:
        room = self.require_owned(room_id, owner_id)
        return self.collection.find_one_and_update(
            {"_id": room["_id"]},
            {"$push": {"images": {"$each": urls}}, "$set": {"updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    # ---------- availability ----------

    def reserve_slot(self, room_id: ObjectId) -> dict:
        """
        Take one available slot for a new booking.

        Raises:
            ConflictError: room inactive, unavailable or fully booked
        """
        room = self.collection.find_one_and_update(
            {
                "_id": room_id,
                "status": "active",
                "availability.isAvailable": True,
                "availability.availableRooms": {"$gt": 0},
            },
            {"$inc": {"availability.availableRooms": -1, "totalBookings": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if room is None:
            raise ConflictError("Room is not available for booking")

        if room["availability"]["availableRooms"] <= 0:
            self.collection.update_one(
                {"_id": room_id}, {"$set": {"availability.isAvailable": False}}
            )
            room["availability"]["isAvailable"] = False
        return room

    def release_slot(self, room_id: ObjectId) -> None:
        """Give a slot back after a booking is rejected, cancelled or completed."""
        room = self.collection.find_one({"_id": room_id})
        if not room:
            log.warning("Cannot release slot: room %s no longer exists", room_id)
            return
        total = room.get("availability", {}).get("totalRooms", 1)
        self.collection.update_one(
            {"_id": room_id, "availability.availableRooms": {"$lt": total}},
            {"$inc": {"availability.availableRooms": 1}},
        )
        self.collection.update_one(
            {"_id": room_id}, {"$set": {"availability.isAvailable": True}}
        )

    def set_rating(self, room_id: ObjectId, rating: float, total_reviews: int) -> None:
        self.collection.update_one(
            {"_id": room_id},
            {"$set": {"rating": rating, "totalReviews": total_reviews}},
        )

    # ---------- search ----------

    def search(self, filters: Dict, sort: str = "newest", page: int = 1, limit: int = 12) -> Tuple[List[dict], dict]:
        """
        Public listing search.

        filters keys (all optional): city, minPrice, maxPrice, roomType,
        accommodationType, amenities, gender, availableOnly, search
        """
        query: Dict = {"status": "active"}

        if filters.get("city"):
            query["location.city"] = {"$regex": f"^{re.escape(filters['city'])}$", "$options": "i"}

        price: Dict = {}
        if filters.get("minPrice") is not None:
            price["$gte"] = filters["minPrice"]
        if filters.get("maxPrice") is not None:
            price["$lte"] = filters["maxPrice"]
        if price:
            query["price"] = price

        if filters.get("roomType"):
            query["roomType"] = filters["roomType"]
        if filters.get("accommodationType"):
            query["accommodationType"] = filters["accommodationType"]
        if filters.get("amenities"):
            query["amenities"] = {"$all": filters["amenities"]}
        if filters.get("gender"):
            query["rules.genderPreference"] = {"$in": [filters["gender"], "any"]}
        if filters.get("availableOnly"):
            query["availability.isAvailable"] = True

        if filters.get("search"):
            pattern = {"$regex": re.escape(filters["search"]), "$options": "i"}
            query["$or"] = [
                {"title": pattern},
                {"description": pattern},
                {"location.city": pattern},
                {"location.address": pattern},
            ]

        docs, pagination = paginate(
            self.collection, query, page, limit, SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"])
        )
        return [serialize_doc(doc) for doc in docs], pagination

    def nearby(self, lat: float, lng: float, radius_km: float = 5, limit: int = 20) -> List[dict]:
        """Active rooms within radius_km of a point, nearest first."""
        rooms = []
        cursor = self.collection.find(
            {"status": "active", "location.coordinates": {"$ne": None}}
        )
        for room in cursor:
            coords = room.get("location", {}).get("coordinates")
            if not coords:
                continue
            distance = haversine_km(lat, lng, coords["lat"], coords["lng"])
            if distance <= radius_km:
                room = serialize_doc(room)
                room["distance"] = round(distance, 2)
                rooms.append(room)
        rooms.sort(key=lambda item: item["distance"])
        return rooms[:limit]

    def owner_rooms(self, owner_id: ObjectId) -> List[dict]:
        """Owner's listings with booking counts per room."""
        rooms = list(self.collection.find({"owner": owner_id}).sort("createdAt", -1))
        result = []
        for room in rooms:
            room = serialize_doc(room)
            room_id = ObjectId(room["_id"])
            room["bookingStats"] = {
                "pending": self.bookings.count_documents({"room": room_id, "status": "pending"}),
                "active": self.bookings.count_documents(
                    {"room": room_id, "status": {"$in": ["confirmed", "active"]}}
                ),
                "total": self.bookings.count_documents({"room": room_id}),
            }
            result.append(room)
        return result
