"""
OTP Routes

POST /otp/email/send - Send verification code to an email
POST /otp/email/verify - Verify email code
POST /otp/phone/send - Send verification code by SMS
POST /otp/phone/verify - Verify phone code
"""

from fastapi import APIRouter

from app.services.otp_service import OTPService
from app.schemas.schemas import ApiResponse, EmailOTPRequest, EmailOTPVerify, PhoneOTPRequest, PhoneOTPVerify

router = APIRouter(prefix="/otp", tags=["OTP"])


@router.post("/email/send", response_model=ApiResponse)
async def send_email_otp(data: EmailOTPRequest):
    result = OTPService().send("email", data.email.lower())
    return ApiResponse(message="OTP sent to your email", data=result)


@router.post("/email/verify", response_model=ApiResponse)
async def verify_email_otp(data: EmailOTPVerify):
    result = OTPService().verify("email", data.email.lower(), data.code)
    return ApiResponse(message="Email verified successfully", data=result)


@router.post("/phone/send", response_model=ApiResponse)
async def send_phone_otp(data: PhoneOTPRequest):
    result = OTPService().send("phone", data.phone)
    return ApiResponse(message="OTP sent to your phone", data=result)


@router.post("/phone/verify", response_model=ApiResponse)
async def verify_phone_otp(data: PhoneOTPVerify):
    result = OTPService().verify("phone", data.phone, data.code)
    return ApiResponse(message="Phone verified successfully", data=result)
