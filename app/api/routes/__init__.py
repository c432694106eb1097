"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.otp_routes import router as otp_router
from app.api.routes.room_routes import router as room_router, properties_router
from app.api.routes.booking_routes import router as booking_router
from app.api.routes.dashboard_routes import router as dashboard_router
from app.api.routes.payment_routes import router as payment_router, owner_router as owner_payment_router
from app.api.routes.negotiation_routes import router as negotiation_router
from app.api.routes.meeting_routes import router as meeting_router
from app.api.routes.review_routes import router as review_router
from app.api.routes.room_sharing_routes import router as room_sharing_router
from app.api.routes.student_routes import router as student_router, saved_rooms_router
from app.api.routes.profile_routes import router as profile_router
from app.api.routes.upload_routes import router as upload_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(otp_router)
api_router.include_router(room_router)
api_router.include_router(properties_router)
api_router.include_router(booking_router)
api_router.include_router(dashboard_router)
api_router.include_router(payment_router)
api_router.include_router(owner_payment_router)
api_router.include_router(negotiation_router)
api_router.include_router(meeting_router)
api_router.include_router(review_router)
api_router.include_router(room_sharing_router)
api_router.include_router(student_router)
api_router.include_router(saved_rooms_router)
api_router.include_router(profile_router)
api_router.include_router(upload_router)
