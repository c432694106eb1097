"""
MongoDB Service - shared helpers for the document services.

Every domain service (users, rooms, bookings, ...) stores plain dicts in
MongoDB with camelCase keys. The helpers here cover the pieces they all need:
- ObjectId <-> str conversion for JSON responses
- Parsing ids that arrive in URLs and request bodies
- Page/limit pagination with a standard pagination block
"""

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection

from app.core.exceptions import ValidationFailedError


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    return value


def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document (and everything nested in it) to a JSON-serializable dict."""
    if doc is None:
        return None
    return serialize_value(doc)


# ============================================================
# HELPER: rounding for scores, ratings and percentages
# ============================================================

def round_half_up(value: float, digits: int = 0):
    """
    Round with halves going up: 62.5 -> 63, 4.25 -> 4.3 (digits=1).

    Python's round() sends halves to the nearest even number instead.
    Returns an int when digits is 0.
    """
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5)
    return rounded if digits == 0 else rounded / scale


# ============================================================
# HELPER: ids
# ============================================================

def to_object_id(value: Any, field: str = "id") -> ObjectId:
    """Parse an id coming from a request. Raises 400 on malformed ids."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationFailedError(f"Invalid {field}")


def same_id(left: Any, right: Any) -> bool:
    """Compare two ids that may be ObjectId or str."""
    if left is None or right is None:
        return False
    return str(left) == str(right)


def to_datetime(value: Any) -> Optional[datetime]:
    """Normalise a date/datetime to a naive datetime (MongoDB cannot store date)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValidationFailedError("Invalid date")


# ============================================================
# HELPER: pagination
# ============================================================

def pagination_block(page: int, limit: int, total: int) -> Dict[str, Any]:
    """Standard pagination block returned by every list endpoint."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def paginate(
    collection: Collection,
    query: dict,
    page: int = 1,
    limit: int = 10,
    sort: Optional[List[Tuple[str, int]]] = None,
) -> Tuple[List[dict], Dict[str, Any]]:
    """
    Run a paged find.

    Returns:
        (raw documents, pagination block)
    """
    page = max(page, 1)
    limit = max(limit, 1)
    total = collection.count_documents(query)
    cursor = collection.find(query)
    if sort:
        cursor = cursor.sort(sort)
    docs = list(cursor.skip((page - 1) * limit).limit(limit))
    return docs, pagination_block(page, limit, total)
