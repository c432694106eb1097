"""
OTP Service - one-time codes for email and phone verification.

Codes are stored hashed, expire after a few minutes (TTL index removes them),
allow a limited number of wrong guesses and cannot be re-requested during a
short cooldown.
"""

import hashlib
import hmac
import math
import secrets
from datetime import datetime, timedelta
from typing import Optional

from pymongo.collection import Collection

from app.core.config import get_settings
from app.core.exceptions import RateLimitError, ValidationFailedError
from app.core.logger import get_logger
from app.db.mongodb import get_collection, COLLECTIONS
from app.services import notification_client
from app.services.user_service import UserService

settings = get_settings()
log = get_logger(__name__)


def deliver(otp_type: str, identifier: str, code: str) -> None:
    if otp_type == "email":
        notification_client.send_email_otp(identifier, code)
    else:
        notification_client.send_sms_otp(identifier, code)


def generate_code(length: int = None) -> str:
    length = length or settings.otp_length
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


class OTPService:
    """Handles otps documents."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["otps"])
        self.users = UserService()

    def _latest(self, otp_type: str, identifier: str, unused_only: bool = False) -> Optional[dict]:
        query = {"identifier": identifier, "type": otp_type}
        if unused_only:
            query["isUsed"] = False
        return self.collection.find_one(query, sort=[("createdAt", -1)])

    def send(self, otp_type: str, identifier: str) -> dict:
        """
        Create and deliver a new code.

        Raises:
            RateLimitError: previous code requested less than the cooldown ago
            IntegrationError: delivery failed
        """
        now = datetime.utcnow()
        previous = self._latest(otp_type, identifier)
        if previous:
            elapsed = (now - previous["createdAt"]).total_seconds()
            if elapsed < settings.otp_resend_cooldown_seconds:
                raise RateLimitError(
                    "Please wait before requesting another OTP",
                    retryAfter=math.ceil(settings.otp_resend_cooldown_seconds - elapsed),
                )

        # Only the newest code is valid
        self.collection.update_many(
            {"identifier": identifier, "type": otp_type, "isUsed": False},
            {"$set": {"isUsed": True}},
        )

        code = generate_code()
        expires_at = now + timedelta(minutes=settings.otp_expiry_minutes)
        result = self.collection.insert_one({
            "identifier": identifier,
            "type": otp_type,
            "codeHash": hash_code(code),
            "attempts": 0,
            "isUsed": False,
            "expiresAt": expires_at,
            "createdAt": now,
        })

        try:
            deliver(otp_type, identifier, code)
        except Exception:
            self.collection.delete_one({"_id": result.inserted_id})
            raise

        log.info("OTP issued for %s %s", otp_type, identifier)
        return {"expiresAt": expires_at, "expiresIn": settings.otp_expiry_minutes * 60}

    def verify(self, otp_type: str, identifier: str, code: str) -> dict:
        """
        Check a code and mark the identifier verified on success.

        Raises:
            ValidationFailedError: no code, expired code or wrong code
            RateLimitError: attempt budget exhausted
        """
        otp = self._latest(otp_type, identifier, unused_only=True)
        if not otp:
            raise ValidationFailedError("Invalid or expired OTP")
        if otp["expiresAt"] < datetime.utcnow():
            raise ValidationFailedError("OTP has expired. Please request a new one")
        if otp["attempts"] >= settings.otp_max_attempts:
            raise RateLimitError("Too many failed attempts. Please request a new OTP")

        if not hmac.compare_digest(otp["codeHash"], hash_code(code)):
            self.collection.update_one({"_id": otp["_id"]}, {"$inc": {"attempts": 1}})
            remaining = settings.otp_max_attempts - otp["attempts"] - 1
            raise ValidationFailedError(f"Invalid OTP. {remaining} attempts remaining")

        self.collection.update_one(
            {"_id": otp["_id"]}, {"$set": {"isUsed": True, "verifiedAt": datetime.utcnow()}}
        )
        user_updated = self.users.mark_verified(otp_type, identifier)
        log.info("OTP verified for %s %s", otp_type, identifier)
        return {"verified": True, "userUpdated": user_updated}
