"""
Dashboard Service - summary counts for the student dashboard.
"""

from typing import Dict

from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS

UPCOMING_MEETING_STATUSES = ["pending", "pending_owner_response", "confirmed", "rescheduled"]


class DashboardService:
    """Read-only counts across the collections a student touches."""

    def __init__(self):
        self.bookings: Collection = get_collection(COLLECTIONS["bookings"])
        self.meetings: Collection = get_collection(COLLECTIONS["meetings"])
        self.negotiations: Collection = get_collection(COLLECTIONS["negotiations"])
        self.room_shares: Collection = get_collection(COLLECTIONS["room_shares"])

    def _count(self, collection: Collection, student_id, status=None) -> int:
        query: Dict = {"student": student_id}
        if isinstance(status, list):
            query["status"] = {"$in": status}
        elif status:
            query["status"] = status
        return collection.count_documents(query)

    def student_stats(self, student: dict) -> dict:
        student_id = student["_id"]
        applications = [
            application
            for share in self.room_shares.find({"applications.applicant": student_id}, {"applications": 1})
            for application in share["applications"]
            if application["applicant"] == student_id
        ]

        return {
            "bookings": {
                "total": self._count(self.bookings, student_id),
                "active": self._count(self.bookings, student_id, ["confirmed", "active"]),
                "pending": self._count(self.bookings, student_id, "pending"),
            },
            "meetings": {
                "total": self._count(self.meetings, student_id),
                "upcoming": self._count(self.meetings, student_id, UPCOMING_MEETING_STATUSES),
                "completed": self._count(self.meetings, student_id, "completed"),
            },
            "negotiations": {
                "total": self._count(self.negotiations, student_id),
                "open": self._count(self.negotiations, student_id, ["pending", "countered"]),
                "accepted": self._count(self.negotiations, student_id, "accepted"),
            },
            "savedRooms": len(student.get("savedRooms", [])),
            "roomSharing": {
                "applications": len(applications),
                "pendingApplications": sum(1 for app in applications if app["status"] == "pending"),
                "acceptedApplications": sum(1 for app in applications if app["status"] == "accepted"),
            },
        }
