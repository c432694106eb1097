"""
Dashboard Routes

GET /dashboard/student/stats - Summary counts for the student dashboard
"""

from fastapi import APIRouter, Depends

from app.core.auth import get_current_student
from app.services.dashboard_service import DashboardService
from app.schemas.schemas import ApiResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/student/stats", response_model=ApiResponse)
async def student_stats(student: dict = Depends(get_current_student)):
    """Counts of the student's bookings, visits, offers, saved rooms and share applications."""
    stats = DashboardService().student_stats(student)
    return ApiResponse(data=stats)
