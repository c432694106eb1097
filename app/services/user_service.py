"""
User Service - accounts, login protection and per-user lists.

Students and owners live in one `users` collection, told apart by `role`.
Besides credentials a user document carries:
- refreshTokens      last N issued refresh tokens (rotation on refresh)
- loginAttempts / lockUntil   brute-force protection
- preferredLocations (students, max 3) and currentLocation
- savedRooms         bookmarked room ids
- compatibilityAssessment     roommate questionnaire (room sharing)
"""

from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.core.auth import hash_password, verify_password
from app.core.config import get_settings
from app.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import serialize_doc, to_object_id

settings = get_settings()
log = get_logger(__name__)

MAX_PREFERRED_LOCATIONS = 3

# Never leaves the service layer
PRIVATE_FIELDS = ("password", "refreshTokens", "loginAttempts", "lockUntil")

STUDENT_FIELDS = ("collegeId", "collegeName", "course", "yearOfStudy")
OWNER_FIELDS = ("businessName", "businessType")


def public_profile(user: dict) -> Optional[dict]:
    """User document without credentials and lockout bookkeeping."""
    if user is None:
        return None
    doc = {key: value for key, value in user.items() if key not in PRIVATE_FIELDS}
    return serialize_doc(doc)


def normalize_identifier(identifier: str) -> dict:
    """Login identifier -> query. Anything with '@' is an email, the rest a phone."""
    identifier = identifier.strip()
    if "@" in identifier:
        return {"email": identifier.lower()}
    cleaned = "".join(ch for ch in identifier if ch.isdigit() or ch == "+")
    return {"phone": cleaned}


class UserService:
    """Handles user accounts stored in the users collection."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["users"])

    # ---------- lookup ----------

    def get_by_id(self, user_id) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(user_id, "userId")})

    def require(self, user_id) -> dict:
        user = self.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_by_identifier(self, identifier: str) -> Optional[dict]:
        return self.collection.find_one(normalize_identifier(identifier))

    # ---------- registration / login ----------

    def create(self, data: dict) -> dict:
        """
        Register a new student or owner.

        Args:
            data: validated RegisterRequest dump (plain password)

        Returns:
            The stored user document
        """
        email = data["email"].lower()
        phone = data["phone"]
        if self.collection.find_one({"email": email}):
            raise ConflictError("An account with this email already exists")
        if self.collection.find_one({"phone": phone}):
            raise ConflictError("An account with this phone number already exists")

        now = datetime.utcnow()
        doc = {
            "email": email,
            "phone": phone,
            "password": hash_password(data["password"]),
            "fullName": data["fullName"].strip(),
            "role": data["role"],
            "profilePhoto": None,
            "isEmailVerified": False,
            "isPhoneVerified": False,
            "isActive": True,
            "lastLogin": None,
            "loginAttempts": 0,
            "lockUntil": None,
            "refreshTokens": [],
            "savedRooms": [],
            "createdAt": now,
            "updatedAt": now,
        }
        if data["role"] == "student":
            doc.update({field: data.get(field) for field in STUDENT_FIELDS})
            doc["preferredLocations"] = []
            doc["currentLocation"] = None
        else:
            doc.update({field: data.get(field) for field in OWNER_FIELDS})
            doc["businessType"] = doc["businessType"] or "individual"

        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        log.info("Registered %s %s", doc["role"], email)
        return doc

    def authenticate(self, identifier: str, password: str, role: Optional[str] = None) -> dict:
        """
        Check credentials with lockout.

        Raises:
            AuthenticationError: unknown user, wrong role or wrong password
            AccountLockedError: too many failed attempts
            PermissionDeniedError: account deactivated
        """
        user = self.get_by_identifier(identifier)
        if not user:
            raise AuthenticationError("Invalid credentials")
        if role and user["role"] != role:
            raise AuthenticationError(f"No {role} account found with these credentials")

        now = datetime.utcnow()
        lock_until = user.get("lockUntil")
        if lock_until and lock_until > now:
            minutes = max(1, int((lock_until - now).total_seconds() // 60))
            raise AccountLockedError(
                f"Account is temporarily locked due to too many failed login attempts. "
                f"Try again in {minutes} minutes"
            )
        if not user.get("isActive", True):
            raise PermissionDeniedError("Account deactivated")

        if not verify_password(password, user["password"]):
            self._record_failed_login(user, now)
            raise AuthenticationError("Invalid credentials")

        self.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"loginAttempts": 0, "lockUntil": None, "lastLogin": now}},
        )
        user["lastLogin"] = now
        return user

    def _record_failed_login(self, user: dict, now: datetime) -> None:
        lock_until = user.get("lockUntil")
        # Expired lock: start counting again
        if lock_until and lock_until <= now:
            attempts = 1
        else:
            attempts = user.get("loginAttempts", 0) + 1

        update = {"loginAttempts": attempts, "lockUntil": None}
        if attempts >= settings.max_login_attempts:
            update["lockUntil"] = now + timedelta(hours=settings.lock_hours)
            log.warning("Locked account %s after %d failed logins", user["_id"], attempts)
        self.collection.update_one({"_id": user["_id"]}, {"$set": update})

    # ---------- refresh tokens ----------

    def add_refresh_token(self, user_id: ObjectId, token: str) -> None:
        """Remember a refresh token, keeping only the most recent N."""
        user = self.require(user_id)
        tokens = user.get("refreshTokens", []) + [{"token": token, "createdAt": datetime.utcnow()}]
        tokens = tokens[-settings.max_refresh_tokens:]
        self.collection.update_one({"_id": user["_id"]}, {"$set": {"refreshTokens": tokens}})

    def has_refresh_token(self, user: dict, token: str) -> bool:
        return any(entry.get("token") == token for entry in user.get("refreshTokens", []))

    def remove_refresh_token(self, user_id: ObjectId, token: str) -> None:
        self.collection.update_one(
            {"_id": user_id}, {"$pull": {"refreshTokens": {"token": token}}}
        )

    def rotate_refresh_token(self, user: dict, old_token: str, new_token: str) -> None:
        tokens = [entry for entry in user.get("refreshTokens", []) if entry.get("token") != old_token]
        tokens.append({"token": new_token, "createdAt": datetime.utcnow()})
        tokens = tokens[-settings.max_refresh_tokens:]
        self.collection.update_one({"_id": user["_id"]}, {"$set": {"refreshTokens": tokens}})

    # ---------- verification / profile ----------

    def mark_verified(self, identifier_type: str, identifier: str) -> bool:
        """Flag email or phone as verified after a successful OTP check."""
        field = "isEmailVerified" if identifier_type == "email" else "isPhoneVerified"
        query = {"email": identifier.lower()} if identifier_type == "email" else {"phone": identifier}
        result = self.collection.update_one(
            query, {"$set": {field: True, "updatedAt": datetime.utcnow()}}
        )
        return result.matched_count > 0

    def update_profile(self, user_id: ObjectId, fields: dict) -> dict:
        """Apply a partial profile update. Only provided fields are written."""
        if not fields:
            raise ValidationFailedError("No fields to update")
        fields["updatedAt"] = datetime.utcnow()
        self.collection.update_one({"_id": user_id}, {"$set": fields})
        return public_profile(self.require(user_id))

    def change_password(self, user_id: ObjectId, current_password: str, new_password: str) -> None:
        """Change password and revoke every refresh token."""
        user = self.require(user_id)
        if not verify_password(current_password, user["password"]):
            raise ValidationFailedError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationFailedError("New password must be different from the current password")
        self.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {
                "password": hash_password(new_password),
                "refreshTokens": [],
                "updatedAt": datetime.utcnow(),
            }},
        )
        log.info("Password changed for user %s", user_id)

    # ---------- preferred locations (students) ----------

    def get_locations(self, user_id: ObjectId) -> dict:
        user = self.require(user_id)
        return {
            "preferredLocations": user.get("preferredLocations", []),
            "currentLocation": user.get("currentLocation"),
        }

    def add_location(self, user_id: ObjectId, location: dict) -> List[dict]:
        """Add a preferred location. At most three per student."""
        user = self.require(user_id)
        locations = user.get("preferredLocations", [])
        if len(locations) >= MAX_PREFERRED_LOCATIONS:
            raise ValidationFailedError(
                f"You can save up to {MAX_PREFERRED_LOCATIONS} preferred locations"
            )
        location["addedAt"] = datetime.utcnow()
        locations.append(location)
        self.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"preferredLocations": locations, "updatedAt": datetime.utcnow()}},
        )
        return locations

    def remove_location(self, user_id: ObjectId, index: int) -> List[dict]:
        user = self.require(user_id)
        locations = user.get("preferredLocations", [])
        if index < 0 or index >= len(locations):
            raise NotFoundError("Location not found")
        locations.pop(index)
        self.collection.update_one(
            {"_id": user["_id"]},
            {"$set": {"preferredLocations": locations, "updatedAt": datetime.utcnow()}},
        )
        return locations

    def set_current_location(self, user_id: ObjectId, location: dict) -> dict:
        current = {
            "coordinates": {"lat": location["lat"], "lng": location["lng"]},
            "address": location.get("address"),
            "city": location.get("city"),
            "updatedAt": datetime.utcnow(),
        }
        self.collection.update_one({"_id": user_id}, {"$set": {"currentLocation": current}})
        return current

    # ---------- saved rooms ----------

    def get_saved_room_ids(self, user_id: ObjectId) -> List[ObjectId]:
        return self.require(user_id).get("savedRooms", [])

    def save_room(self, user_id: ObjectId, room_id: ObjectId) -> bool:
        """Bookmark a room. Returns False if it was already saved."""
        result = self.collection.update_one(
            {"_id": user_id}, {"$addToSet": {"savedRooms": room_id}}
        )
        return result.modified_count > 0

    def unsave_room(self, user_id: ObjectId, room_id: ObjectId) -> bool:
        result = self.collection.update_one({"_id": user_id}, {"$pull": {"savedRooms": room_id}})
        return result.modified_count > 0

    # ---------- compatibility assessment ----------

    def get_assessment(self, user_id: ObjectId) -> Optional[dict]:
        return self.require(user_id).get("compatibilityAssessment")

    def set_assessment(self, user_id: ObjectId, assessment: dict) -> dict:
        assessment["updatedAt"] = datetime.utcnow()
        self.collection.update_one(
            {"_id": user_id}, {"$set": {"compatibilityAssessment": assessment}}
        )
        return assessment

    def update_assessment(self, user_id: ObjectId, fields: dict) -> dict:
        """Partial update of an existing assessment."""
        current = self.get_assessment(user_id)
        if not current:
            raise NotFoundError("No assessment found. Please complete your compatibility assessment.")
        if not fields:
            raise ValidationFailedError("No fields to update")
        current.update(fields)
        return self.set_assessment(user_id, current)
