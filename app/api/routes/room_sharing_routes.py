"""
Room Sharing Routes

POST /room-sharing - Look for roommates for a booked room (verified student)
GET /room-sharing - Browse active room shares
GET /room-sharing/my-shares - Shares the caller started or joined
GET /room-sharing/applications - Applications sent / received
GET /room-sharing/applications/{share_id}/{application_id} - Application details
GET|POST|DELETE /room-sharing/interest - Shares the caller is interested in
GET|POST|PUT /room-sharing/assessment - Caller's compatibility assessment
GET /room-sharing/statistics - Global (and per-user) numbers
POST /room-sharing/cleanup - Cancel stale shares
GET /room-sharing/{share_id} - Share details (+ compatibility for logged-in users)
PUT /room-sharing/{share_id} - Initiator edits the share
DELETE /room-sharing/{share_id} - Initiator cancels the share
POST /room-sharing/{share_id}/apply - Apply to join (verified student)
DELETE /room-sharing/{share_id}/apply - Withdraw pending application
PUT /room-sharing/{share_id}/respond - Initiator accepts / rejects an application
POST /room-sharing/{share_id}/deactivate - Initiator closes the share
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_student, get_current_user, get_optional_user, get_verified_student
from app.services.mongo_service import serialize_doc
from app.services.room_sharing_service import RoomSharingService
from app.services.user_service import UserService
from app.schemas.schemas import (
    ApiResponse, ApplicationListType, ApplicationStatus, CleanupRequest,
    CompatibilityAssessment, CompatibilityAssessmentUpdate, GenderPreference,
    InterestRequest, RoomShareCreate, RoomShareUpdate, ShareApplyRequest, ShareRespondRequest,
)

router = APIRouter(prefix="/room-sharing", tags=["Room Sharing"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create_share(data: RoomShareCreate, student: dict = Depends(get_verified_student)):
    """
    Start a room share. Requires a confirmed or active booking of the property.

    Rent and deposit are split evenly over maxParticipants.
    """
    service = RoomSharingService()
    share = service.create(student["_id"], data.model_dump())
    return ApiResponse(message="Room share created successfully", data=service.populate(share))


@router.get("", response_model=ApiResponse)
async def list_shares(
    city: Optional[str] = Query(None),
    maxRent: Optional[float] = Query(None, ge=0, description="Max rent per person"),
    gender: Optional[GenderPreference] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
):
    filters = {"city": city, "maxRent": maxRent, "gender": gender.value if gender else None}
    shares, pagination = RoomSharingService().list_active(filters, page, limit)
    return ApiResponse(data={"shares": shares, "pagination": pagination})


@router.get("/my-shares", response_model=ApiResponse)
async def my_shares(user: dict = Depends(get_current_user)):
    return ApiResponse(data=RoomSharingService().my_shares(user["_id"]))


# ---------- applications ----------

@router.get("/applications", response_model=ApiResponse)
async def list_applications(
    type: ApplicationListType = Query(ApplicationListType.all),
    status: Optional[ApplicationStatus] = Query(None),
    user: dict = Depends(get_current_user),
):
    applications = RoomSharingService().list_applications(
        user["_id"], type.value, status.value if status else None
    )
    return ApiResponse(data={"applications": applications, "total": len(applications)})


@router.get("/applications/{share_id}/{application_id}", response_model=ApiResponse)
async def get_application(share_id: str, application_id: str, user: dict = Depends(get_current_user)):
    return ApiResponse(data=RoomSharingService().application_detail(share_id, application_id, user["_id"]))


# ---------- interest ----------

@router.get("/interest", response_model=ApiResponse)
async def list_interest(user: dict = Depends(get_current_user)):
    shares = RoomSharingService().interested_shares(user["_id"])
    return ApiResponse(data={"shares": shares, "total": len(shares)})


@router.post("/interest", response_model=ApiResponse)
async def add_interest(data: InterestRequest, user: dict = Depends(get_current_user)):
    added = RoomSharingService().add_interest(data.shareId, user["_id"])
    return ApiResponse(
        message="Marked as interested" if added else "Already marked as interested",
        data={"added": added},
    )


@router.delete("/interest", response_model=ApiResponse)
async def remove_interest(data: InterestRequest, user: dict = Depends(get_current_user)):
    removed = RoomSharingService().remove_interest(data.shareId, user["_id"])
    return ApiResponse(message="Interest removed" if removed else "Not marked as interested", data={"removed": removed})


# ---------- compatibility assessment ----------

@router.get("/assessment", response_model=ApiResponse)
async def get_assessment(student: dict = Depends(get_current_student)):
    assessment = UserService().get_assessment(student["_id"])
    return ApiResponse(data={"assessment": serialize_doc(assessment), "hasAssessment": assessment is not None})


@router.post("/assessment", response_model=ApiResponse)
async def save_assessment(data: CompatibilityAssessment, student: dict = Depends(get_current_student)):
    """Replace the caller's assessment (used to score roommate compatibility)."""
    assessment = UserService().set_assessment(student["_id"], data.model_dump())
    return ApiResponse(message="Compatibility assessment saved", data={"assessment": serialize_doc(assessment)})


@router.put("/assessment", response_model=ApiResponse)
async def update_assessment(data: CompatibilityAssessmentUpdate, student: dict = Depends(get_current_student)):
    assessment = UserService().update_assessment(student["_id"], data.model_dump(exclude_unset=True))
    return ApiResponse(message="Compatibility assessment updated", data={"assessment": serialize_doc(assessment)})


# ---------- statistics / maintenance ----------

@router.get("/statistics", response_model=ApiResponse)
async def share_statistics(user: Optional[dict] = Depends(get_optional_user)):
    return ApiResponse(data=RoomSharingService().statistics(user["_id"] if user else None))


@router.post("/cleanup", response_model=ApiResponse)
async def cleanup_shares(data: CleanupRequest, user: dict = Depends(get_current_user)):
    """Cancel active shares whose property is gone, inactive or fully booked."""
    result = RoomSharingService().cleanup(data.daysInactive, data.forceCleanup)
    return ApiResponse(
        message=f"Cleanup completed. Processed {result['totalChecked']} shares.",
        data=serialize_doc(result),
    )


# ---------- single share ----------

@router.get("/{share_id}", response_model=ApiResponse)
async def get_share(share_id: str, user: Optional[dict] = Depends(get_optional_user)):
    return ApiResponse(data=RoomSharingService().detail(share_id, user))


@router.put("/{share_id}", response_model=ApiResponse)
async def update_share(share_id: str, data: RoomShareUpdate, user: dict = Depends(get_current_user)):
    service = RoomSharingService()
    share = service.update(share_id, user["_id"], data.model_dump(exclude_unset=True))
    return ApiResponse(message="Room share updated successfully", data=service.populate(share))


@router.delete("/{share_id}", response_model=ApiResponse)
async def cancel_share(share_id: str, user: dict = Depends(get_current_user)):
    service = RoomSharingService()
    share = service.cancel(share_id, user["_id"])
    return ApiResponse(message="Room share cancelled", data=service.populate(share))


@router.post("/{share_id}/apply", response_model=ApiResponse, status_code=201)
async def apply_to_share(share_id: str, data: ShareApplyRequest, student: dict = Depends(get_verified_student)):
    application = RoomSharingService().apply(share_id, student["_id"], data.message)
    return ApiResponse(message="Application submitted successfully", data=serialize_doc(application))


@router.delete("/{share_id}/apply", response_model=ApiResponse)
async def withdraw_application(share_id: str, student: dict = Depends(get_current_student)):
    RoomSharingService().withdraw(share_id, student["_id"])
    return ApiResponse(message="Application withdrawn")


@router.put("/{share_id}/respond", response_model=ApiResponse)
async def respond_to_application(share_id: str, data: ShareRespondRequest, user: dict = Depends(get_current_user)):
    """Accepting fills a slot; the share turns full at capacity."""
    service = RoomSharingService()
    share = service.respond(share_id, user["_id"], data.applicationId, data.status, data.message)
    return ApiResponse(message=f"Application {data.status}", data=service.populate(share))


@router.post("/{share_id}/deactivate", response_model=ApiResponse)
async def deactivate_share(share_id: str, user: dict = Depends(get_current_user)):
    service = RoomSharingService()
    share = service.deactivate(share_id, user["_id"])
    return ApiResponse(message="Room share deactivated", data=service.populate(share))
