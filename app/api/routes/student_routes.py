"""
Student Routes

GET /student/profile - Get student profile
PUT /student/profile - Update student profile
GET /student/locations - Preferred locations and current location
POST /student/locations - Add preferred location (max 3)
DELETE /student/locations/{index} - Remove preferred location
PUT /student/locations/current - Update current location
GET /saved-rooms - Bookmarked rooms
POST /saved-rooms - Bookmark a room
DELETE /saved-rooms/{room_id} - Remove bookmark
"""

from fastapi import APIRouter, Depends

from app.core.auth import get_current_student
from app.services.mongo_service import serialize_doc, to_object_id
from app.services.room_service import RoomService
from app.services.user_service import UserService, public_profile
from app.schemas.schemas import (
    ApiResponse, CurrentLocationUpdate, LocationCreate, SavedRoomRequest, StudentProfileUpdate,
)

router = APIRouter(prefix="/student", tags=["Students"])
saved_rooms_router = APIRouter(prefix="/saved-rooms", tags=["Students"])


# ============================================================
# PROFILE
# ============================================================

@router.get("/profile", response_model=ApiResponse)
async def get_profile(student: dict = Depends(get_current_student)):
    return ApiResponse(data={"user": public_profile(student)})


@router.put("/profile", response_model=ApiResponse)
async def update_profile(profile: StudentProfileUpdate, student: dict = Depends(get_current_student)):
    """Update profile. Only provided fields are changed."""
    user = UserService().update_profile(student["_id"], profile.model_dump(exclude_unset=True))
    return ApiResponse(message="Profile updated successfully", data={"user": user})


# ============================================================
# LOCATIONS
# ============================================================

@router.get("/locations", response_model=ApiResponse)
async def get_locations(student: dict = Depends(get_current_student)):
    return ApiResponse(data=UserService().get_locations(student["_id"]))


@router.post("/locations", response_model=ApiResponse, status_code=201)
async def add_location(location: LocationCreate, student: dict = Depends(get_current_student)):
    """Used to suggest nearby rooms. Up to three per student."""
    locations = UserService().add_location(student["_id"], location.model_dump())
    return ApiResponse(message="Location added", data={"preferredLocations": locations})


@router.put("/locations/current", response_model=ApiResponse)
async def update_current_location(location: CurrentLocationUpdate, student: dict = Depends(get_current_student)):
    current = UserService().set_current_location(student["_id"], location.model_dump())
    return ApiResponse(message="Current location updated", data={"currentLocation": current})


@router.delete("/locations/{index}", response_model=ApiResponse)
async def remove_location(index: int, student: dict = Depends(get_current_student)):
    locations = UserService().remove_location(student["_id"], index)
    return ApiResponse(message="Location removed", data={"preferredLocations": locations})


# ============================================================
# SAVED ROOMS
# ============================================================

@saved_rooms_router.get("", response_model=ApiResponse)
async def list_saved_rooms(student: dict = Depends(get_current_student)):
    room_ids = UserService().get_saved_room_ids(student["_id"])
    rooms = RoomService().collection.find({"_id": {"$in": room_ids}})
    saved = [serialize_doc(room) for room in rooms]
    return ApiResponse(data={"rooms": saved, "total": len(saved)})


@saved_rooms_router.post("", response_model=ApiResponse)
async def save_room(data: SavedRoomRequest, student: dict = Depends(get_current_student)):
    """Idempotent: saving an already saved room is not an error."""
    room = RoomService().require(data.roomId)
    added = UserService().save_room(student["_id"], room["_id"])
    return ApiResponse(
        message="Room saved" if added else "Room already saved",
        data={"roomId": str(room["_id"]), "saved": True},
    )


@saved_rooms_router.delete("/{room_id}", response_model=ApiResponse)
async def unsave_room(room_id: str, student: dict = Depends(get_current_student)):
    removed = UserService().unsave_room(student["_id"], to_object_id(room_id, "roomId"))
    return ApiResponse(
        message="Room removed from saved" if removed else "Room was not saved",
        data={"roomId": room_id, "saved": False},
    )
