"""
Profile Routes

GET /profile/owner - Get owner profile with listing stats
PUT /profile/owner - Update owner profile
PUT /profile/password - Change password (any user)
POST /profile/upload-avatar - Upload profile photo (any user)
"""

from fastapi import APIRouter, Depends, File, UploadFile

from app.core.auth import get_current_owner, get_current_user
from app.services import cloudinary_client
from app.services.room_service import RoomService
from app.services.user_service import UserService, public_profile
from app.schemas.schemas import ApiResponse, OwnerProfileUpdate, PasswordChangeRequest
from app.utils.file_upload import read_media_file

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("/owner", response_model=ApiResponse)
async def get_owner_profile(owner: dict = Depends(get_current_owner)):
    rooms = RoomService().collection
    stats = {
        "totalProperties": rooms.count_documents({"owner": owner["_id"]}),
        "activeProperties": rooms.count_documents({"owner": owner["_id"], "status": "active"}),
    }
    return ApiResponse(data={"user": public_profile(owner), "stats": stats})


@router.put("/owner", response_model=ApiResponse)
async def update_owner_profile(profile: OwnerProfileUpdate, owner: dict = Depends(get_current_owner)):
    """Update business details. Only provided fields are changed."""
    user = UserService().update_profile(owner["_id"], profile.model_dump(exclude_unset=True))
    return ApiResponse(message="Profile updated successfully", data={"user": user})


@router.put("/password", response_model=ApiResponse)
async def change_password(data: PasswordChangeRequest, user: dict = Depends(get_current_user)):
    """Logs out every other session: all refresh tokens are revoked."""
    UserService().change_password(user["_id"], data.currentPassword, data.newPassword)
    return ApiResponse(message="Password changed successfully. Please login again.")


@router.post("/upload-avatar", response_model=ApiResponse)
async def upload_avatar(
    file: UploadFile = File(..., description="Profile photo (JPEG, PNG or WEBP)"),
    user: dict = Depends(get_current_user),
):
    content = await read_media_file(file, "image")
    uploaded = cloudinary_client.upload_media(content, "image", "profile")
    profile = UserService().update_profile(user["_id"], {"profilePhoto": uploaded["url"]})
    return ApiResponse(message="Profile photo updated", data={"user": profile, "upload": uploaded})
