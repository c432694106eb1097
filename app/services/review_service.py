"""
Review Service - student reviews of rooms.

One review per student per room. Any change to a room's reviews recomputes
the room's rating (mean, one decimal) and totalReviews.
"""

from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import paginate, round_half_up, same_id, serialize_doc, to_object_id
from app.services.room_service import RoomService

log = get_logger(__name__)

CATEGORY_NAMES = ("cleanliness", "location", "facilities", "owner", "value")


def fill_categories(rating: int, categories: Optional[dict]) -> dict:
    """Missing category scores default to the overall rating."""
    categories = categories or {}
    return {name: categories.get(name) or rating for name in CATEGORY_NAMES}


class ReviewService:
    """Handles review documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["reviews"])
        self.bookings: Collection = get_collection(COLLECTIONS["bookings"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.rooms = RoomService()

    def require(self, review_id) -> dict:
        review = self.collection.find_one({"_id": to_object_id(review_id, "reviewId")})
        if not review:
            raise NotFoundError("Review not found")
        return review

    def require_author(self, review_id, student_id: ObjectId) -> dict:
        review = self.require(review_id)
        if not same_id(review["student"], student_id):
            raise PermissionDeniedError("You can only modify your own reviews")
        return review

    # ---------- rating aggregate ----------

    def recompute_room_rating(self, room_id: ObjectId) -> dict:
        """Recalculate the room's rating from all of its reviews."""
        ratings = [doc["overallRating"] for doc in self.collection.find({"property": room_id}, {"overallRating": 1})]
        average = round_half_up(sum(ratings) / len(ratings), 1) if ratings else 0
        self.rooms.set_rating(room_id, average, len(ratings))
        return {"rating": average, "totalReviews": len(ratings)}

    # ---------- create / update / delete ----------

    def create(self, student_id: ObjectId, data: dict) -> dict:
        """
        Review a room.

        Raises:
            NotFoundError: unknown room
            ConflictError: student already reviewed this room
        """
        room = self.rooms.require(data["roomId"])
        if same_id(room["owner"], student_id):
            raise ValidationFailedError("You cannot review your own property")
        if self.collection.find_one({"property": room["_id"], "student": student_id}):
            raise ConflictError("You have already reviewed this room")

        booking_query: Dict = {"room": room["_id"], "student": student_id, "status": {"$in": ["active", "completed"]}}
        if data.get("bookingId"):
            booking_query["_id"] = to_object_id(data["bookingId"], "bookingId")
        booking = self.bookings.find_one(booking_query)

        now = datetime.utcnow()
        doc = {
            "property": room["_id"],
            "student": student_id,
            "booking": booking["_id"] if booking else None,
            "overallRating": data["rating"],
            "categories": fill_categories(data["rating"], data.get("categories")),
            "comment": data.get("comment"),
            "stayDuration": data.get("stayDuration") or "3 months",
            "isVerified": booking is not None,
            "helpfulCount": 0,
            "helpfulUsers": [],
            "ownerResponse": None,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("You have already reviewed this room")
        doc["_id"] = result.inserted_id

        if booking:
            self.bookings.update_one({"_id": booking["_id"]}, {"$set": {"studentReviewSubmitted": True}})
        self.recompute_room_rating(room["_id"])
        log.info("Review %s added to room %s", doc["_id"], room["_id"])
        return doc

    def update(self, review_id, student_id: ObjectId, data: dict) -> dict:
        review = self.require_author(review_id, student_id)
        updates: Dict = {}
        rating = data.get("rating") or review["overallRating"]
        if data.get("rating") is not None:
            updates["overallRating"] = data["rating"]
        if data.get("comment") is not None:
            updates["comment"] = data["comment"]
        if data.get("stayDuration") is not None:
            updates["stayDuration"] = data["stayDuration"]
        if data.get("categories") is not None:
            updates["categories"] = fill_categories(rating, data["categories"])
        if not updates:
            raise ValidationFailedError("No fields to update")

        updates["updatedAt"] = datetime.utcnow()
        self.collection.update_one({"_id": review["_id"]}, {"$set": updates})
        self.recompute_room_rating(review["property"])
        return self.require(review["_id"])

    def delete(self, review_id, student_id: ObjectId) -> None:
        review = self.require_author(review_id, student_id)
        self.collection.delete_one({"_id": review["_id"]})
        self.recompute_room_rating(review["property"])
        log.info("Review %s deleted", review["_id"])

    def toggle_helpful(self, review_id, user_id: ObjectId) -> dict:
        """Mark / unmark a review as helpful for the caller."""
        review = self.require(review_id)
        if same_id(review["student"], user_id):
            raise ValidationFailedError("You cannot mark your own review as helpful")

        if any(same_id(existing, user_id) for existing in review.get("helpfulUsers", [])):
            self.collection.update_one(
                {"_id": review["_id"]}, {"$pull": {"helpfulUsers": user_id}, "$inc": {"helpfulCount": -1}}
            )
            marked = False
        else:
            self.collection.update_one(
                {"_id": review["_id"]}, {"$push": {"helpfulUsers": user_id}, "$inc": {"helpfulCount": 1}}
            )
            marked = True
        review = self.require(review["_id"])
        return {"helpfulCount": review["helpfulCount"], "markedHelpful": marked}

    def respond(self, review_id, owner_id: ObjectId, message: str) -> dict:
        """Room owner answers a review."""
        review = self.require(review_id)
        room = self.rooms.require(review["property"])
        if not same_id(room["owner"], owner_id):
            raise PermissionDeniedError("Only the property owner can respond to this review")
        self.collection.update_one(
            {"_id": review["_id"]},
            {"$set": {"ownerResponse": {"message": message, "respondedAt": datetime.utcnow()}}},
        )
        return self.require(review["_id"])

    # ---------- listing ----------

    def populate(self, review: dict) -> dict:
        doc = serialize_doc(review)
        student = self.users.find_one({"_id": review["student"]}, {"fullName": 1, "profilePhoto": 1})
        doc["student"] = serialize_doc(student) if student else {"_id": str(review["student"])}
        return doc

    def list_for_room(self, room_id, page: int = 1, limit: int = 10) -> dict:
        room = self.rooms.require(room_id)
        docs, pagination = paginate(
            self.collection, {"property": room["_id"]}, page, limit, [("createdAt", -1)]
        )

        all_reviews = list(self.collection.find({"property": room["_id"]}, {"overallRating": 1, "categories": 1}))
        distribution = {str(star): 0 for star in range(1, 6)}
        category_totals = {name: 0 for name in CATEGORY_NAMES}
        for item in all_reviews:
            distribution[str(item["overallRating"])] += 1
            for name in CATEGORY_NAMES:
                category_totals[name] += item.get("categories", {}).get(name, item["overallRating"])

        count = len(all_reviews)
        summary = {
            "averageRating": room.get("rating", 0),
            "totalReviews": count,
            "ratingDistribution": distribution,
            "categoryAverages": {
                name: round_half_up(total / count, 1) if count else 0 for name, total in category_totals.items()
            },
        }
        return {
            "reviews": [self.populate(doc) for doc in docs],
            "summary": summary,
            "pagination": pagination,
        }
