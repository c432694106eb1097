"""
Negotiation Routes

POST /negotiations - Make a price offer on a room (student only)
GET /negotiations - Offers made and received, with summary
GET /negotiations/{negotiation_id} - Negotiation details
POST /negotiations/{negotiation_id}/respond - Owner accepts, rejects or counters
POST /negotiations/{negotiation_id}/student-respond - Student accepts or rejects a counter
POST /negotiations/{negotiation_id}/withdraw - Student withdraws an open offer
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_owner, get_current_student, get_current_user
from app.services.negotiation_service import NegotiationService
from app.schemas.schemas import (
    ApiResponse, NegotiationCreate, NegotiationRespond, NegotiationRole,
    NegotiationStatus, NegotiationStudentRespond,
)

router = APIRouter(prefix="/negotiations", tags=["Negotiations"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create_negotiation(data: NegotiationCreate, student: dict = Depends(get_current_student)):
    """Offer a lower monthly rent. Valid for 7 days."""
    service = NegotiationService()
    negotiation = service.create(student["_id"], data.model_dump())
    return ApiResponse(
        message="Price offer sent to the owner",
        data=service.detail(negotiation["_id"], student["_id"]),
    )


@router.get("", response_model=ApiResponse)
async def list_negotiations(
    role: NegotiationRole = Query(NegotiationRole.auto),
    status: Optional[NegotiationStatus] = Query(None),
    user: dict = Depends(get_current_user),
):
    result = NegotiationService().list_for_user(user, role.value, status.value if status else None)
    return ApiResponse(data=result)


@router.get("/{negotiation_id}", response_model=ApiResponse)
async def get_negotiation(negotiation_id: str, user: dict = Depends(get_current_user)):
    return ApiResponse(data=NegotiationService().detail(negotiation_id, user["_id"]))


@router.post("/{negotiation_id}/respond", response_model=ApiResponse)
async def owner_respond(
    negotiation_id: str,
    data: NegotiationRespond,
    owner: dict = Depends(get_current_owner),
):
    """Counter offers must lie between the proposed and the listed price."""
    service = NegotiationService()
    negotiation = service.owner_respond(negotiation_id, owner["_id"], data.model_dump())
    return ApiResponse(
        message=f"Offer {negotiation['status']}",
        data=service.detail(negotiation["_id"], owner["_id"]),
    )


@router.post("/{negotiation_id}/student-respond", response_model=ApiResponse)
async def student_respond(
    negotiation_id: str,
    data: NegotiationStudentRespond,
    student: dict = Depends(get_current_student),
):
    service = NegotiationService()
    negotiation = service.student_respond(negotiation_id, student["_id"], data.model_dump())
    return ApiResponse(
        message=f"Counter offer {negotiation['status']}",
        data=service.detail(negotiation["_id"], student["_id"]),
    )


@router.post("/{negotiation_id}/withdraw", response_model=ApiResponse)
async def withdraw_negotiation(negotiation_id: str, student: dict = Depends(get_current_student)):
    service = NegotiationService()
    negotiation = service.withdraw(negotiation_id, student["_id"])
    return ApiResponse(message="Offer withdrawn", data=service.detail(negotiation["_id"], student["_id"]))
