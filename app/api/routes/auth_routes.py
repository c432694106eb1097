"""
Authentication Routes

POST /auth/register - Register new student or owner
POST /auth/login - Login with email or phone, get access token + refresh cookie
POST /auth/refresh - Rotate refresh token, get new access token
POST /auth/logout - Revoke refresh token and clear cookie
GET /auth/me - Get current user info
GET /auth/check - Is the caller authenticated?
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from app.core.auth import (
    clear_refresh_cookie,
    create_token_pair,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_current_user,
    get_optional_user,
    set_refresh_cookie,
)
from app.core.config import get_settings
from app.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from app.core.rate_limit import login_limiter
from app.services.user_service import UserService, public_profile
from app.schemas.schemas import ApiResponse, LoginRequest, RefreshRequest, RegisterRequest

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Authentication"])


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=ApiResponse, status_code=201)
async def register(data: RegisterRequest):
    """
    Register a new user account.

    Verify email and phone via /otp afterwards (needed for room sharing).
    """
    user = UserService().create(data.model_dump())
    return ApiResponse(
        message=f"Registered successfully as {user['role']}. Please login.",
        data={"user": public_profile(user)},
    )


@router.post("/login", response_model=ApiResponse)
async def login(data: LoginRequest, request: Request, response: Response):
    """
    Login and receive a JWT access token.

    The refresh token is set as an httpOnly cookie.
    Include the access token in requests: Authorization: Bearer <token>
    """
    login_limiter.consume(client_ip(request))

    users = UserService()
    user = users.authenticate(data.identifier, data.password, data.role)
    tokens = create_token_pair(user)
    users.add_refresh_token(user["_id"], tokens["refreshToken"])
    set_refresh_cookie(response, tokens["refreshToken"])

    return ApiResponse(
        message="Login successful",
        data={"accessToken": tokens["accessToken"], "user": public_profile(user)},
    )


@router.post("/refresh", response_model=ApiResponse)
async def refresh(request: Request, response: Response, data: Optional[RefreshRequest] = None):
    """Exchange a refresh token (cookie or body) for a new token pair."""
    token = request.cookies.get(settings.refresh_cookie_name) or (data.refreshToken if data else None)
    if not token:
        raise AuthenticationError("Refresh token required")

    payload = decode_refresh_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired refresh token")

    users = UserService()
    user = users.get_by_id(payload["sub"])
    if not user:
        raise NotFoundError("User not found")
    if not user.get("isActive", True):
        raise PermissionDeniedError("Account deactivated")
    if not users.has_refresh_token(user, token):
        raise AuthenticationError("Refresh token has been revoked")

    user_id = str(user["_id"])
    new_refresh = create_refresh_token(user_id)
    users.rotate_refresh_token(user, token, new_refresh)
    set_refresh_cookie(response, new_refresh)

    access_token = create_access_token({"sub": user_id, "email": user["email"], "role": user["role"]})
    return ApiResponse(
        message="Token refreshed",
        data={"accessToken": access_token, "user": public_profile(user)},
    )


@router.post("/logout", response_model=ApiResponse)
async def logout(request: Request, response: Response):
    """Revoke the presented refresh token (if any) and clear the cookie."""
    token = request.cookies.get(settings.refresh_cookie_name)
    if token:
        payload = decode_refresh_token(token)
        if payload:
            users = UserService()
            user = users.get_by_id(payload["sub"])
            if user:
                users.remove_refresh_token(user["_id"], token)
    clear_refresh_cookie(response)
    return ApiResponse(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return ApiResponse(data={"user": public_profile(user)})


@router.get("/check", response_model=ApiResponse)
async def check(user: Optional[dict] = Depends(get_optional_user)):
    """Never fails: reports whether the bearer token is valid."""
    return ApiResponse(data={
        "authenticated": user is not None,
        "user": public_profile(user) if user else None,
    })
