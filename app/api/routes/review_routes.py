"""
Review Routes

POST /reviews - Review a room (student only)
GET /reviews - Reviews of a room with rating summary
GET /reviews/{review_id} - Review details
PUT /reviews/{review_id} - Edit own review
DELETE /reviews/{review_id} - Delete own review
POST /reviews/{review_id}/helpful - Toggle "helpful" mark
POST /reviews/{review_id}/respond - Owner answers a review
"""

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_owner, get_current_student, get_current_user
from app.services.review_service import ReviewService
from app.schemas.schemas import ApiResponse, ReviewCreate, ReviewOwnerResponse, ReviewUpdate

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ApiResponse, status_code=201)
async def create_review(data: ReviewCreate, student: dict = Depends(get_current_student)):
    """One review per room. Marked verified when the student stayed there."""
    service = ReviewService()
    review = service.create(student["_id"], data.model_dump())
    return ApiResponse(message="Review submitted successfully", data=service.populate(review))


@router.get("", response_model=ApiResponse)
async def list_reviews(
    roomId: str = Query(...),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
):
    return ApiResponse(data=ReviewService().list_for_room(roomId, page, limit))


@router.get("/{review_id}", response_model=ApiResponse)
async def get_review(review_id: str):
    service = ReviewService()
    return ApiResponse(data=service.populate(service.require(review_id)))


@router.put("/{review_id}", response_model=ApiResponse)
async def update_review(review_id: str, data: ReviewUpdate, student: dict = Depends(get_current_student)):
    service = ReviewService()
    review = service.update(review_id, student["_id"], data.model_dump(exclude_unset=True))
    return ApiResponse(message="Review updated successfully", data=service.populate(review))


@router.delete("/{review_id}", response_model=ApiResponse)
async def delete_review(review_id: str, student: dict = Depends(get_current_student)):
    ReviewService().delete(review_id, student["_id"])
    return ApiResponse(message="Review deleted successfully")


@router.post("/{review_id}/helpful", response_model=ApiResponse)
async def toggle_helpful(review_id: str, user: dict = Depends(get_current_user)):
    return ApiResponse(data=ReviewService().toggle_helpful(review_id, user["_id"]))


@router.post("/{review_id}/respond", response_model=ApiResponse)
async def respond_to_review(
    review_id: str,
    data: ReviewOwnerResponse,
    owner: dict = Depends(get_current_owner),
):
    service = ReviewService()
    review = service.respond(review_id, owner["_id"], data.message)
    return ApiResponse(message="Response added", data=service.populate(review))
