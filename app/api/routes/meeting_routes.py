"""
Meeting Routes

POST /meetings - Request a property visit (student only)
GET /meetings - Caller's meetings
GET /meetings/{meeting_id} - Meeting details
POST /meetings/{meeting_id}/respond - Owner accepts / declines a request or counter proposal
POST /meetings/{meeting_id}/student-respond - Student accepts, declines or proposes another slot
PUT /meetings/{meeting_id}/reschedule - Owner moves the meeting
PUT /meetings/{meeting_id}/status - Owner sets status (completed / no_show record the outcome)
POST /meetings/{meeting_id}/cancel - Either side cancels
POST /meetings/{meeting_id}/rating - Rate a completed meeting
POST /meetings/{meeting_id}/google-meet - Attach a Google Meet link
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_owner, get_current_student, get_current_user
from app.services.meeting_service import MeetingService
from app.schemas.schemas import (
    ApiResponse, GoogleMeetRequest, MeetingCancel, MeetingCreate, MeetingOwnerRespond,
    MeetingRating, MeetingReschedule, MeetingStatus, MeetingStatusUpdate, MeetingStudentRespond,
)

router = APIRouter(prefix="/meetings", tags=["Meetings"])


@router.post("", response_model=ApiResponse, status_code=201)
async def schedule_meeting(data: MeetingCreate, student: dict = Depends(get_current_student)):
    """
    Request a visit at requestedDate + requestedTime (HH:MM).

    meetingType is virtual or phone; anything else is an in-person visit.
    """
    service = MeetingService()
    meeting = service.schedule(student["_id"], data.model_dump())
    return ApiResponse(message="Meeting request sent to the owner", data=service.populate(meeting))


@router.get("", response_model=ApiResponse)
async def list_meetings(
    status: Optional[MeetingStatus] = Query(None),
    user: dict = Depends(get_current_user),
):
    meetings = MeetingService().list_for_user(user, status.value if status else None)
    return ApiResponse(data={"meetings": meetings, "total": len(meetings)})


@router.get("/{meeting_id}", response_model=ApiResponse)
async def get_meeting(meeting_id: str, user: dict = Depends(get_current_user)):
    service = MeetingService()
    return ApiResponse(data=service.populate(service.require_participant(meeting_id, user["_id"])))


@router.post("/{meeting_id}/respond", response_model=ApiResponse)
async def owner_respond(meeting_id: str, data: MeetingOwnerRespond, owner: dict = Depends(get_current_owner)):
    """Accepting without a slot confirms the student's first preferred date."""
    service = MeetingService()
    meeting = service.owner_respond(meeting_id, owner["_id"], data.model_dump())
    return ApiResponse(message=f"Meeting {meeting['status']}", data=service.populate(meeting))


@router.post("/{meeting_id}/student-respond", response_model=ApiResponse)
async def student_respond(
    meeting_id: str,
    data: MeetingStudentRespond,
    student: dict = Depends(get_current_student),
):
    service = MeetingService()
    meeting = service.student_respond(meeting_id, student["_id"], data.model_dump())
    return ApiResponse(message=f"Meeting {meeting['status']}", data=service.populate(meeting))


@router.put("/{meeting_id}/reschedule", response_model=ApiResponse)
async def reschedule_meeting(meeting_id: str, data: MeetingReschedule, owner: dict = Depends(get_current_owner)):
    """The student has to accept the new slot."""
    service = MeetingService()
    meeting = service.reschedule(meeting_id, owner["_id"], data.model_dump())
    return ApiResponse(message="Meeting rescheduled", data=service.populate(meeting))


@router.put("/{meeting_id}/status", response_model=ApiResponse)
async def update_meeting_status(
    meeting_id: str,
    data: MeetingStatusUpdate,
    owner: dict = Depends(get_current_owner),
):
    service = MeetingService()
    meeting = service.update_status(meeting_id, owner["_id"], data.model_dump())
    return ApiResponse(message=f"Meeting marked {meeting['status']}", data=service.populate(meeting))


@router.post("/{meeting_id}/cancel", response_model=ApiResponse)
async def cancel_meeting(meeting_id: str, data: MeetingCancel, user: dict = Depends(get_current_user)):
    service = MeetingService()
    meeting = service.cancel(meeting_id, user["_id"], data.reason)
    return ApiResponse(message="Meeting cancelled", data=service.populate(meeting))


@router.post("/{meeting_id}/rating", response_model=ApiResponse)
async def rate_meeting(meeting_id: str, data: MeetingRating, user: dict = Depends(get_current_user)):
    service = MeetingService()
    result = service.rate(meeting_id, user["_id"], data.rating, data.comment)
    return ApiResponse(
        message="Thanks for your feedback",
        data={"meeting": service.populate(result["meeting"]), "averageRating": result["averageRating"]},
    )


@router.post("/{meeting_id}/google-meet", response_model=ApiResponse)
async def create_google_meet(meeting_id: str, data: GoogleMeetRequest, user: dict = Depends(get_current_user)):
    """Creates a Calendar event with Meet conference data using the caller's Google token."""
    service = MeetingService()
    result = service.create_google_meet(meeting_id, user["_id"], data.googleAccessToken)
    meeting = service.populate(result["meeting"])
    return ApiResponse(
        message="Google Meet link created" if result["created"] else "Google Meet link already exists",
        data={
            "meeting": meeting,
            "meetingLink": meeting["virtualMeetingDetails"]["meetingLink"],
            "created": result["created"],
        },
    )
