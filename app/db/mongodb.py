"""
MongoDB Connection Utility

Every StudentNest entity lives in MongoDB:
- users (students and owners share one collection, split by role)
- rooms, bookings, negotiations, meetings, reviews
- room_shares (roommate listings with embedded applications)
- otps (short-lived verification codes, TTL indexed)
- transactions (payment orders)
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection

from app.core.config import get_settings
from app.core.logger import get_logger

settings = get_settings()
log = get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, tz_aware=False)
    return _client


def get_mongo_db() -> Database:
    """Get the studentnest database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection by its real name (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        log.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "rooms": "rooms",
    "bookings": "bookings",
    "negotiations": "negotiations",
    "meetings": "meetings",
    "reviews": "reviews",
    "room_shares": "room_shares",
    "otps": "otps",
    "transactions": "transactions",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    users.create_index("phone", unique=True)
    users.create_index("role")

    rooms = db[COLLECTIONS["rooms"]]
    rooms.create_index([("location.city", ASCENDING), ("price", ASCENDING)])
    rooms.create_index("owner")
    rooms.create_index([("status", ASCENDING), ("availability.isAvailable", ASCENDING)])
    rooms.create_index([("rating", DESCENDING)])

    bookings = db[COLLECTIONS["bookings"]]
    bookings.create_index([("student", ASCENDING), ("status", ASCENDING)])
    bookings.create_index([("owner", ASCENDING), ("status", ASCENDING)])
    bookings.create_index("room")

    negotiations = db[COLLECTIONS["negotiations"]]
    negotiations.create_index([("room", ASCENDING), ("student", ASCENDING)])
    negotiations.create_index([("owner", ASCENDING), ("status", ASCENDING)])

    meetings = db[COLLECTIONS["meetings"]]
    meetings.create_index([("student", ASCENDING), ("status", ASCENDING)])
    meetings.create_index([("owner", ASCENDING), ("status", ASCENDING)])

    # One review per student per room
    db[COLLECTIONS["reviews"]].create_index(
        [("property", ASCENDING), ("student", ASCENDING)], unique=True
    )

    shares = db[COLLECTIONS["room_shares"]]
    shares.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
    shares.create_index("initiator")
    shares.create_index("applications.applicant")

    # OTPs disappear on their own once expired
    otps = db[COLLECTIONS["otps"]]
    otps.create_index("expiresAt", expireAfterSeconds=0)
    otps.create_index([("identifier", ASCENDING), ("type", ASCENDING), ("createdAt", DESCENDING)])

    transactions = db[COLLECTIONS["transactions"]]
    transactions.create_index("orderId", unique=True)
    transactions.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])

    log.info("MongoDB indexes created successfully")
