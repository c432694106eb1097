"""
Upload Routes

POST /upload - Upload one image or video to media storage
POST /upload/property - Upload room photos and attach them to the listing (owner only)
DELETE /upload - Remove an uploaded file
GET /upload/formats - Supported formats and size limits
"""

from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.auth import get_current_owner, get_current_user
from app.core.exceptions import ValidationFailedError
from app.services import cloudinary_client
from app.services.mongo_service import serialize_doc
from app.services.room_service import RoomService
from app.schemas.schemas import ApiResponse, DeleteUploadRequest, UploadCategory, UploadType
from app.utils.file_upload import get_supported_formats, read_media_file

router = APIRouter(prefix="/upload", tags=["Uploads"])

MAX_PROPERTY_IMAGES = 10


@router.post("", response_model=ApiResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    type: UploadType = Form(UploadType.image),
    category: UploadCategory = Form(UploadCategory.property),
    user: dict = Depends(get_current_user),
):
    """
    Upload a file.

    Images: JPEG, PNG, WEBP up to 10MB (resized to fit 800x600)
    Videos: MP4, MOV, AVI up to 100MB
    """
    content = await read_media_file(file, type.value)
    uploaded = cloudinary_client.upload_media(content, type.value, category.value)
    return ApiResponse(message="File uploaded successfully", data=uploaded)


@router.post("/property", response_model=ApiResponse, status_code=201)
async def upload_property_images(
    propertyId: str = Form(...),
    files: List[UploadFile] = File(...),
    owner: dict = Depends(get_current_owner),
):
    """Upload up to 10 images and append them to the room's gallery."""
    if len(files) > MAX_PROPERTY_IMAGES:
        raise ValidationFailedError(f"You can upload at most {MAX_PROPERTY_IMAGES} images at once")

    rooms = RoomService()
    room = rooms.require_owned(propertyId, owner["_id"])

    contents = [await read_media_file(file, "image") for file in files]
    uploads = [cloudinary_client.upload_media(content, "image", "property") for content in contents]
    updated = rooms.add_images(room["_id"], owner["_id"], [item["url"] for item in uploads])
    return ApiResponse(
        message=f"{len(uploads)} image(s) uploaded",
        data={"uploads": uploads, "images": serialize_doc(updated)["images"]},
    )


@router.delete("", response_model=ApiResponse)
async def delete_file(data: DeleteUploadRequest, user: dict = Depends(get_current_user)):
    deleted = cloudinary_client.delete_media(data.publicId, data.type)
    return ApiResponse(
        message="File deleted successfully" if deleted else "File not found",
        data={"publicId": data.publicId, "deleted": deleted},
    )


@router.get("/formats", response_model=ApiResponse)
async def supported_formats():
    return ApiResponse(data=get_supported_formats())
