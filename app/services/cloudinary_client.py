"""
Cloudinary client - media storage for room photos, videos and avatars.

Files land in <cloudinary_folder>/<category>/<type>s, e.g.
student-nest/property/images.
"""

import io
from datetime import datetime

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from app.core.config import get_settings
from app.core.exceptions import IntegrationError
from app.core.logger import get_logger

settings = get_settings()
log = get_logger(__name__)

IMAGE_TRANSFORMATION = [
    {"quality": "auto", "fetch_format": "auto"},
    {"width": 800, "height": 600, "crop": "limit"},
]

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    if not settings.cloudinary_configured:
        raise IntegrationError("Media storage is not configured")
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True,
    )
    _configured = True


def upload_media(content: bytes, media_type: str = "image", category: str = "property") -> dict:
    """
    Upload bytes to Cloudinary.

    Returns:
        {"url", "publicId", "width", "height", "format", "size", "duration", "uploadedAt"}
    """
    _configure()
    options = {
        "folder": f"{settings.cloudinary_folder}/{category}/{media_type}s",
        "resource_type": media_type,
    }
    if media_type == "image":
        options["transformation"] = IMAGE_TRANSFORMATION

    try:
        result = cloudinary.uploader.upload(io.BytesIO(content), **options)
    except CloudinaryError as e:
        log.error("Cloudinary upload failed: %s", e)
        raise IntegrationError("Failed to upload file")

    log.info("Uploaded %s %s", media_type, result.get("public_id"))
    return {
        "url": result["secure_url"],
        "publicId": result["public_id"],
        "width": result.get("width"),
        "height": result.get("height"),
        "format": result.get("format"),
        "size": result.get("bytes"),
        "duration": result.get("duration"),
        "uploadedAt": datetime.utcnow(),
    }


def delete_media(public_id: str, media_type: str = "image") -> bool:
    """Remove an uploaded asset. Returns False if Cloudinary did not find it."""
    _configure()
    try:
        result = cloudinary.uploader.destroy(public_id, resource_type=media_type)
    except CloudinaryError as e:
        log.error("Cloudinary delete failed for %s: %s", public_id, e)
        raise IntegrationError("Failed to delete file")
    return result.get("result") == "ok"
