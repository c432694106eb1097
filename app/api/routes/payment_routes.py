"""
Payment Routes

POST /payments/create-order - Open a Razorpay order for a booking
POST /payments/verify - Verify Razorpay checkout signature
POST /payments/confirm-offline - Report a cash / UPI / bank transfer payment
GET /payments/history - Caller's transactions
GET /payments/statistics - Caller's transaction totals
GET /owner/payments/pending - Offline payments awaiting the owner
POST /owner/payments/confirm - Owner confirms an offline payment
"""

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_owner, get_current_student, get_current_user
from app.services.payment_service import PaymentService
from app.schemas.schemas import (
    ApiResponse, CreateOrderRequest, OfflinePaymentRequest,
    OwnerConfirmPaymentRequest, VerifyPaymentRequest,
)

router = APIRouter(prefix="/payments", tags=["Payments"])
owner_router = APIRouter(prefix="/owner/payments", tags=["Payments"])


@router.post("/create-order", response_model=ApiResponse, status_code=201)
async def create_order(data: CreateOrderRequest, student: dict = Depends(get_current_student)):
    """Amount is the booking's total, in paise."""
    order = PaymentService().create_order(data.bookingId, student["_id"])
    return ApiResponse(message="Payment order created", data=order)


@router.post("/verify", response_model=ApiResponse)
async def verify_payment(data: VerifyPaymentRequest, user: dict = Depends(get_current_user)):
    transaction = PaymentService().verify(user["_id"], data.orderId, data.paymentId, data.signature)
    return ApiResponse(message="Payment verified successfully", data=transaction)


@router.post("/confirm-offline", response_model=ApiResponse)
async def confirm_offline_payment(data: OfflinePaymentRequest, student: dict = Depends(get_current_student)):
    """The booking stays pending_confirmation until the owner confirms."""
    booking = PaymentService().confirm_offline(student["_id"], data.model_dump())
    return ApiResponse(message="Payment submitted. Waiting for owner confirmation.", data=booking)


@router.get("/history", response_model=ApiResponse)
async def payment_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user: dict = Depends(get_current_user),
):
    transactions, pagination = PaymentService().history(user["_id"], page, limit)
    return ApiResponse(data={"transactions": transactions, "pagination": pagination})


@router.get("/statistics", response_model=ApiResponse)
async def payment_statistics(user: dict = Depends(get_current_user)):
    return ApiResponse(data=PaymentService().statistics(user["_id"]))


@owner_router.get("/pending", response_model=ApiResponse)
async def pending_payments(owner: dict = Depends(get_current_owner)):
    bookings = PaymentService().pending_for_owner(owner["_id"])
    return ApiResponse(data={"bookings": bookings, "count": len(bookings)})


@owner_router.post("/confirm", response_model=ApiResponse)
async def confirm_payment(data: OwnerConfirmPaymentRequest, owner: dict = Depends(get_current_owner)):
    booking = PaymentService().owner_confirm(owner["_id"], data.bookingId, data.notes)
    return ApiResponse(message="Payment confirmed", data=booking)
