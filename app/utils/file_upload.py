"""
File Upload Utility - validate media before it is sent to Cloudinary.

Supported formats:
- Images: JPEG, PNG, WEBP (max 10MB)
- Videos: MP4, MOV, AVI (max 100MB)
"""

from typing import Dict, Set
from fastapi import UploadFile, HTTPException


MAX_IMAGE_SIZE_MB = 10
MAX_VIDEO_SIZE_MB = 100

ALLOWED_CONTENT_TYPES: Dict[str, Set[str]] = {
    "image": {"image/jpeg", "image/jpg", "image/png", "image/webp"},
    "video": {"video/mp4", "video/quicktime", "video/x-msvideo"},
}

ALLOWED_EXTENSIONS: Dict[str, Set[str]] = {
    "image": {".jpg", ".jpeg", ".png", ".webp"},
    "video": {".mp4", ".mov", ".avi"},
}

MAX_SIZE_BYTES = {
    "image": MAX_IMAGE_SIZE_MB * 1024 * 1024,
    "video": MAX_VIDEO_SIZE_MB * 1024 * 1024,
}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def read_media_file(file: UploadFile, media_type: str = "image") -> bytes:
    """
    Read an uploaded image/video after checking type and size.

    Args:
        file: FastAPI UploadFile
        media_type: "image" or "video"

    Returns:
        File content

    Raises:
        HTTPException 400 (no file / wrong type / empty), 413 (too large)
    """
    if not file or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    content_type = (file.content_type or "").lower()
    ext = get_file_extension(file.filename)
    if content_type not in ALLOWED_CONTENT_TYPES[media_type] and ext not in ALLOWED_EXTENSIONS[media_type]:
        allowed = ", ".join(sorted(ALLOWED_CONTENT_TYPES[media_type]))
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type '{content_type or ext}'. Allowed: {allowed}"
        )

    content = await file.read()

    if len(content) > MAX_SIZE_BYTES[media_type]:
        limit = MAX_IMAGE_SIZE_MB if media_type == "image" else MAX_VIDEO_SIZE_MB
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {limit}MB"
        )

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file")

    return content


def get_supported_formats() -> dict:
    """Return supported upload formats and limits."""
    return {
        "image": {
            "types": sorted(ALLOWED_CONTENT_TYPES["image"]),
            "max_size_mb": MAX_IMAGE_SIZE_MB,
        },
        "video": {
            "types": sorted(ALLOWED_CONTENT_TYPES["video"]),
            "max_size_mb": MAX_VIDEO_SIZE_MB,
        },
    }
