"""
Booking Routes

POST /bookings - Book a room (student only)
GET /bookings - List bookings (student: own, owner: received)
GET /bookings/my-bookings - Student's bookings grouped into current / past
GET /bookings/statistics - Booking dashboard numbers
POST /bookings/validate - Can the student book this room?
GET /bookings/{booking_id} - Booking details (participants only)
POST /bookings/{booking_id}/actions - Approve, reject, cancel, check in/out, extensions
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_student, get_current_user
from app.services.booking_service import BookingService
from app.schemas.schemas import (
    ApiResponse, BookingActionRequest, BookingCreate, BookingStatus,
    BookingValidateRequest, StatsTimeframe,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create_booking(booking: BookingCreate, student: dict = Depends(get_current_student)):
    """
    Book a room.

    Students can hold only one pending / confirmed / active booking at a time.
    The price comes from an accepted negotiation when there is one.
    """
    service = BookingService()
    doc = service.create(student["_id"], booking.model_dump())
    return ApiResponse(message="Booking request created successfully", data=service.populate(doc))


@router.get("", response_model=ApiResponse)
async def list_bookings(
    status: Optional[BookingStatus] = Query(None, description="'active' also matches confirmed"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user: dict = Depends(get_current_user),
):
    bookings, pagination = BookingService().list_for_user(
        user, status.value if status else None, page, limit
    )
    return ApiResponse(data={"bookings": bookings, "pagination": pagination})


@router.get("/my-bookings", response_model=ApiResponse)
async def my_bookings(student: dict = Depends(get_current_student)):
    return ApiResponse(data=BookingService().my_bookings(student["_id"]))


@router.get("/statistics", response_model=ApiResponse)
async def booking_statistics(
    timeframe: StatsTimeframe = Query(StatsTimeframe.all),
    user: dict = Depends(get_current_user),
):
    return ApiResponse(data=BookingService().statistics(user, timeframe.value))


@router.post("/validate", response_model=ApiResponse)
async def validate_booking(data: BookingValidateRequest, student: dict = Depends(get_current_student)):
    """Pre-flight check for the booking form. Never creates anything."""
    return ApiResponse(data=BookingService().validate(student["_id"], data.roomId))


@router.get("/{booking_id}", response_model=ApiResponse)
async def get_booking(booking_id: str, user: dict = Depends(get_current_user)):
    service = BookingService()
    booking = service.require_participant(booking_id, user["_id"])
    return ApiResponse(data=service.populate(booking))


@router.post("/{booking_id}/actions", response_model=ApiResponse)
async def booking_action(
    booking_id: str,
    data: BookingActionRequest,
    user: dict = Depends(get_current_user),
):
    """
    Move a booking through its lifecycle.

    Owner: approve/confirm, reject, activate/check_in, approve_extension, reject_extension
    Student: request_extension
    Either: cancel, complete/check_out
    """
    service = BookingService()
    booking = service.perform_action(booking_id, user, data.model_dump())
    return ApiResponse(message=f"Booking {data.action} successful", data=service.populate(booking))
