"""
Room Routes

POST /rooms - Create listing (owner only)
GET /rooms - Search listings with filters, sorting and pagination
GET /rooms/nearby - Listings within a radius of a point
GET /rooms/{room_id} - Get listing details
PUT /rooms/{room_id} - Update listing (owner only)
DELETE /rooms/{room_id} - Delete listing (owner only)
GET /properties/my-properties - Owner's listings with booking counts
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_owner
from app.services.mongo_service import serialize_doc
from app.services.room_service import RoomService
from app.schemas.schemas import ApiResponse, RoomCreate, RoomSort, RoomUpdate

router = APIRouter(prefix="/rooms", tags=["Rooms"])
properties_router = APIRouter(prefix="/properties", tags=["Rooms"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create_room(room: RoomCreate, owner: dict = Depends(get_current_owner)):
    """Create a new room listing. New listings are active immediately."""
    doc = RoomService().create(owner["_id"], room.model_dump())
    return ApiResponse(message="Room created successfully", data=serialize_doc(doc))


@router.get("", response_model=ApiResponse)
async def search_rooms(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    city: Optional[str] = Query(None),
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    roomType: Optional[str] = Query(None),
    accommodationType: Optional[str] = Query(None),
    amenities: Optional[List[str]] = Query(None, description="Room must have all of these"),
    gender: Optional[str] = Query(None),
    availableOnly: bool = Query(False),
    search: Optional[str] = Query(None, description="Search in title, description and city"),
    sort: RoomSort = Query(RoomSort.newest),
):
    """Public listing search."""
    filters = {
        "city": city,
        "minPrice": minPrice,
        "maxPrice": maxPrice,
        "roomType": roomType,
        "accommodationType": accommodationType,
        "amenities": amenities,
        "gender": gender,
        "availableOnly": availableOnly,
        "search": search,
    }
    rooms, pagination = RoomService().search(filters, sort.value, page, limit)
    return ApiResponse(data={"rooms": rooms, "pagination": pagination})


@router.get("/nearby", response_model=ApiResponse)
async def nearby_rooms(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(5, gt=0, le=100, description="Radius in km"),
    limit: int = Query(20, ge=1, le=100),
):
    """Active listings within `radius` km, nearest first."""
    rooms = RoomService().nearby(lat, lng, radius, limit)
    return ApiResponse(data={"rooms": rooms, "count": len(rooms)})


@router.get("/{room_id}", response_model=ApiResponse)
async def get_room(room_id: str):
    """Public listing detail with a short owner summary."""
    return ApiResponse(data=RoomService().detail(room_id))


@router.put("/{room_id}", response_model=ApiResponse)
async def update_room(room_id: str, room: RoomUpdate, owner: dict = Depends(get_current_owner)):
    """Partial update. Only the listing's owner can update it."""
    doc = RoomService().update(room_id, owner["_id"], room.model_dump(exclude_unset=True))
    return ApiResponse(message="Room updated successfully", data=serialize_doc(doc))


@router.delete("/{room_id}", response_model=ApiResponse)
async def delete_room(room_id: str, owner: dict = Depends(get_current_owner)):
    """Delete a listing. Refused while it has open bookings."""
    RoomService().delete(room_id, owner["_id"])
    return ApiResponse(message="Room deleted successfully")


@properties_router.get("/my-properties", response_model=ApiResponse)
async def my_properties(owner: dict = Depends(get_current_owner)):
    rooms = RoomService().owner_rooms(owner["_id"])
    return ApiResponse(data={"properties": rooms, "total": len(rooms)})
