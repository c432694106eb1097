"""
Meeting Service - property visits between a student and an owner.

    student schedules          -> pending
    owner accept / confirm     -> confirmed       owner decline -> declined
    owner reschedule           -> rescheduled     (student accepts, declines or counters)
    student counter_reschedule -> pending_owner_response
    owner accept_counter       -> confirmed       owner decline_counter -> pending
    either side cancel         -> cancelled
    owner status update        -> completed / no_show / ...

Every transition is appended to the meeting's history.
"""

from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services import google_meet_client
from app.services.mongo_service import same_id, serialize_doc, to_datetime, to_object_id
from app.services.room_service import RoomService

log = get_logger(__name__)

DEFAULT_MEETING_TIME = "10:00"
TERMINAL_STATUSES = ["declined", "cancelled", "completed", "no_show"]
OWNER_RESPONDABLE = ["pending", "pending_owner_response"]
STUDENT_RESPONDABLE = ["confirmed", "rescheduled"]


def combine_date_time(day, time_str: str) -> datetime:
    """date + 'HH:MM' -> naive datetime."""
    day = to_datetime(day)
    try:
        hours, minutes = (int(part) for part in time_str.split(":"))
        return day.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    except (ValueError, AttributeError):
        raise ValidationFailedError("Invalid time format. Use HH:MM")


def infer_platform(link: Optional[str]) -> Optional[str]:
    if not link:
        return None
    if "meet.google" in link:
        return "google_meet"
    if "zoom.us" in link:
        return "zoom"
    if "wa.me" in link or "whatsapp" in link:
        return "whatsapp"
    return None


def meeting_role(meeting: dict, user_id) -> Optional[str]:
    if same_id(meeting.get("student"), user_id):
        return "student"
    if same_id(meeting.get("owner"), user_id):
        return "owner"
    return None


class MeetingService:
    """Handles meeting documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["meetings"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.rooms = RoomService()

    # ---------- lookup ----------

    def require(self, meeting_id) -> dict:
        meeting = self.collection.find_one({"_id": to_object_id(meeting_id, "meetingId")})
        if not meeting:
            raise NotFoundError("Meeting not found")
        return meeting

    def require_participant(self, meeting_id, user_id: ObjectId) -> dict:
        meeting = self.require(meeting_id)
        if not meeting_role(meeting, user_id):
            raise PermissionDeniedError("You do not have access to this meeting")
        return meeting

    def require_owner(self, meeting_id, user_id: ObjectId) -> dict:
        meeting = self.require(meeting_id)
        if not same_id(meeting["owner"], user_id):
            raise PermissionDeniedError("Only the property owner can do this")
        return meeting

    def require_student(self, meeting_id, user_id: ObjectId) -> dict:
        meeting = self.require(meeting_id)
        if not same_id(meeting["student"], user_id):
            raise PermissionDeniedError("Only the student who requested the meeting can do this")
        return meeting

    # ---------- helpers ----------

    @staticmethod
    def _history(action: str, by: ObjectId, details: Optional[dict] = None) -> dict:
        return {"action": action, "by": by, "at": datetime.utcnow(), "details": details or {}}

    def _save(self, meeting: dict, updates: Dict, action: str, by: ObjectId, details: dict = None) -> dict:
        updates["updatedAt"] = datetime.utcnow()
        self.collection.update_one(
            {"_id": meeting["_id"]},
            {"$set": updates, "$push": {"history": self._history(action, by, details)}},
        )
        log.info("Meeting %s: %s", meeting["_id"], action)
        return self.require(meeting["_id"])

    @staticmethod
    def _require_status(meeting: dict, allowed, action: str) -> None:
        if meeting["status"] not in allowed:
            raise ValidationFailedError(f"Cannot {action} a meeting with status '{meeting['status']}'")

    def populate(self, meeting: dict) -> dict:
        doc = serialize_doc(meeting)
        room = self.rooms.collection.find_one(
            {"_id": meeting["property"]}, {"title": 1, "location": 1, "images": 1, "price": 1}
        )
        doc["property"] = serialize_doc(room) if room else {"_id": str(meeting["property"])}
        for field in ("student", "owner"):
            person = self.users.find_one(
                {"_id": meeting[field]}, {"fullName": 1, "email": 1, "phone": 1, "profilePhoto": 1}
            )
            doc[field] = serialize_doc(person) if person else {"_id": str(meeting[field])}
        return doc

    # ---------- schedule / list ----------

    def schedule(self, student_id: ObjectId, data: dict) -> dict:
        """
        Request a property visit.

        Raises:
            ValidationFailedError: slot not in the future, own property
            NotFoundError: unknown property
            ConflictError: an open request already exists for this property
        """
        requested = combine_date_time(data["requestedDate"], data["requestedTime"])
        if requested <= datetime.utcnow():
            raise ValidationFailedError("Meeting time must be in the future")

        room = self.rooms.require(data["propertyId"])
        if same_id(room["owner"], student_id):
            raise ValidationFailedError("You cannot schedule a visit to your own property")

        duplicate = self.collection.find_one({
            "property": room["_id"],
            "student": student_id,
            "status": {"$in": ["pending", "pending_owner_response", "confirmed", "rescheduled"]},
        })
        if duplicate:
            raise ConflictError("You already have an open meeting request for this property")

        meeting_type = data.get("meetingType")
        if meeting_type not in ("virtual", "phone"):
            meeting_type = "physical"
        link = data.get("meetingLink")

        now = datetime.utcnow()
        doc = {
            "property": room["_id"],
            "student": student_id,
            "owner": room["owner"],
            "preferredDates": [requested],
            "requestedTime": data["requestedTime"],
            "confirmedDate": None,
            "confirmedTime": None,
            "status": "pending",
            "meetingType": meeting_type,
            "purpose": data.get("purpose") or "property_viewing",
            "virtualMeetingDetails": (
                {"platform": infer_platform(link), "meetingLink": link}
                if meeting_type == "virtual" and link else None
            ),
            "studentNotes": data.get("message"),
            "ownerNotes": None,
            "ownerResponse": None,
            "studentResponse": None,
            "counterProposal": None,
            "feedback": {},
            "history": [self._history("scheduled", student_id, {"requestedAt": requested})],
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Meeting %s requested for room %s", doc["_id"], room["_id"])
        return doc

    def list_for_user(self, user: dict, status: Optional[str] = None) -> list:
        query: Dict = {"student" if user["role"] == "student" else "owner": user["_id"]}
        if status:
            query["status"] = status
        docs = self.collection.find(query).sort("createdAt", -1)
        return [self.populate(doc) for doc in docs]

    # ---------- owner ----------

    def owner_respond(self, meeting_id, owner_id: ObjectId, data: dict) -> dict:
        meeting = self.require_owner(meeting_id, owner_id)
        action = data["action"]
        response = data.get("response")

        if action in ("accept", "confirm"):
            self._require_status(meeting, OWNER_RESPONDABLE, "accept")
            confirmed_date = to_datetime(data.get("confirmedDate")) or meeting["preferredDates"][0]
            confirmed_time = data.get("confirmedTime") or meeting.get("requestedTime") or DEFAULT_MEETING_TIME
            updates = {
                "status": "confirmed",
                "confirmedDate": combine_date_time(confirmed_date, confirmed_time),
                "confirmedTime": confirmed_time,
                "ownerResponse": response,
                "counterProposal": None,
            }
        elif action == "decline":
            self._require_status(meeting, OWNER_RESPONDABLE, "decline")
            updates = {"status": "declined", "ownerResponse": response}
        elif action == "accept_counter":
            self._require_status(meeting, ["pending_owner_response"], "accept the counter proposal of")
            proposal = meeting.get("counterProposal")
            if not proposal:
                raise ValidationFailedError("No counter proposal to accept")
            updates = {
                "status": "confirmed",
                "confirmedDate": combine_date_time(proposal["date"], proposal["time"]),
                "confirmedTime": proposal["time"],
                "ownerResponse": response,
                "counterProposal": None,
            }
        else:
            self._require_status(meeting, ["pending_owner_response"], "decline the counter proposal of")
            updates = {"status": "pending", "ownerResponse": response, "counterProposal": None}

        return self._save(meeting, updates, f"owner_{action}", owner_id)

    def reschedule(self, meeting_id, owner_id: ObjectId, data: dict) -> dict:
        meeting = self.require_owner(meeting_id, owner_id)
        self._require_status(
            meeting, ["pending", "pending_owner_response", "confirmed", "rescheduled"], "reschedule"
        )
        new_slot = combine_date_time(data["newDate"], data["newTime"])
        if new_slot <= datetime.utcnow():
            raise ValidationFailedError("Meeting time must be in the future")
        updates = {
            "status": "rescheduled",
            "confirmedDate": new_slot,
            "confirmedTime": data["newTime"],
            "ownerResponse": data.get("reason") or "Meeting rescheduled by owner",
            "rescheduledAt": datetime.utcnow(),
            "counterProposal": None,
        }
        return self._save(meeting, updates, "rescheduled", owner_id, {"newDate": new_slot})

    def update_status(self, meeting_id, owner_id: ObjectId, data: dict) -> dict:
        meeting = self.require_owner(meeting_id, owner_id)
        if meeting["status"] in TERMINAL_STATUSES:
            raise ValidationFailedError(f"Meeting is already {meeting['status']}")

        status = data["status"]
        updates: Dict = {"status": status}
        if status == "confirmed":
            confirmed_date = to_datetime(data.get("confirmedDate")) or meeting.get("confirmedDate") or meeting["preferredDates"][0]
            confirmed_time = data.get("confirmedTime") or meeting.get("confirmedTime") or meeting.get("requestedTime") or DEFAULT_MEETING_TIME
            updates["confirmedDate"] = combine_date_time(confirmed_date, confirmed_time)
            updates["confirmedTime"] = confirmed_time
        elif status == "cancelled":
            updates.update(cancelledBy=owner_id, cancelledAt=datetime.utcnow(),
                           cancellationReason=data.get("notes") or "No reason provided")
        elif status in ("completed", "no_show"):
            updates["completedAt"] = datetime.utcnow()
            updates["outcome"] = {
                "studentInterested": data.get("studentInterested"),
                "ownerInterested": data.get("ownerInterested"),
                "notes": data.get("notes"),
            }
        return self._save(meeting, updates, f"status_{status}", owner_id)

    # ---------- student ----------

    def student_respond(self, meeting_id, student_id: ObjectId, data: dict) -> dict:
        meeting = self.require_student(meeting_id, student_id)
        self._require_status(meeting, STUDENT_RESPONDABLE, "respond to")
        action = data["action"]

        if action == "accept":
            updates = {"status": "confirmed", "studentResponse": data.get("response")}
        elif action == "decline":
            updates = {"status": "declined", "studentResponse": data.get("response")}
        else:
            proposal = data.get("counterProposal")
            if not proposal:
                raise ValidationFailedError("New date and time are required to propose a reschedule")
            slot = combine_date_time(proposal["newDate"], proposal["newTime"])
            if slot <= datetime.utcnow():
                raise ValidationFailedError("Meeting time must be in the future")
            updates = {
                "status": "pending_owner_response",
                "studentResponse": data.get("response"),
                "counterProposal": {
                    "date": to_datetime(proposal["newDate"]),
                    "time": proposal["newTime"],
                    "reason": proposal.get("reason"),
                    "proposedAt": datetime.utcnow(),
                },
            }
        return self._save(meeting, updates, f"student_{action}", student_id)

    # ---------- either side ----------

    def cancel(self, meeting_id, user_id: ObjectId, reason: Optional[str] = None) -> dict:
        meeting = self.require_participant(meeting_id, user_id)
        if meeting["status"] in TERMINAL_STATUSES:
            raise ValidationFailedError(f"Cannot cancel a meeting that is {meeting['status']}")
        reason = reason or "No reason provided"
        updates = {
            "status": "cancelled",
            "cancelledBy": user_id,
            "cancelledAt": datetime.utcnow(),
            "cancellationReason": reason,
        }
        return self._save(meeting, updates, "cancelled", user_id, {"reason": reason})

    def rate(self, meeting_id, user_id: ObjectId, rating: int, comment: Optional[str] = None) -> dict:
        """
        Rate a completed meeting, once per side.

        Returns:
            {"meeting", "averageRating"} - averageRating only once both sides rated
        """
        meeting = self.require_participant(meeting_id, user_id)
        if meeting["status"] != "completed":
            raise ValidationFailedError("Only completed meetings can be rated")

        side = meeting_role(meeting, user_id)
        feedback = meeting.get("feedback") or {}
        if feedback.get(side):
            raise ConflictError("You have already rated this meeting")

        feedback[side] = {"rating": rating, "comment": comment, "ratedAt": datetime.utcnow()}
        updated = self._save(meeting, {"feedback": feedback}, "rated", user_id, {"rating": rating})

        average = None
        if feedback.get("student") and feedback.get("owner"):
            average = (feedback["student"]["rating"] + feedback["owner"]["rating"]) / 2
        return {"meeting": updated, "averageRating": average}

    def create_google_meet(self, meeting_id, user_id: ObjectId, access_token: str) -> dict:
        """
        Attach a Google Meet link to the meeting (idempotent).

        Returns:
            {"meeting", "created"} - created is False when a link already existed
        """
        meeting = self.require_participant(meeting_id, user_id)
        if meeting["status"] in TERMINAL_STATUSES:
            raise ValidationFailedError(f"Cannot add a meeting link to a meeting that is {meeting['status']}")

        details = meeting.get("virtualMeetingDetails") or {}
        if details.get("meetingLink"):
            return {"meeting": meeting, "created": False}

        day = meeting.get("confirmedDate") or meeting["preferredDates"][0]
        start = combine_date_time(
            day, meeting.get("confirmedTime") or meeting.get("requestedTime") or DEFAULT_MEETING_TIME
        )

        room = self.rooms.collection.find_one({"_id": meeting["property"]}, {"title": 1})
        emails = [
            person["email"]
            for person in self.users.find(
                {"_id": {"$in": [meeting["student"], meeting["owner"]]}}, {"email": 1}
            )
        ]
        event = google_meet_client.create_meet_event(
            access_token,
            start,
            title=f"Property Visit: {room['title'] if room else 'StudentNest property'}",
            attendees=emails,
        )

        updates = {
            "meetingType": "virtual",
            "virtualMeetingDetails": {
                "platform": "google_meet",
                "meetingLink": event["meetingLink"],
                "meetingId": event["meetingId"],
                "eventId": event["eventId"],
            },
        }
        updated = self._save(meeting, updates, "google_meet_created", user_id, {"eventId": event["eventId"]})
        return {"meeting": updated, "created": True}
