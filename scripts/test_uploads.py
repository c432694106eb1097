#!/usr/bin/env python3
"""
Upload Tests

Media validation, property galleries, avatars, deletes.
Cloudinary is stubbed in conftest.fake_integrations.
Run: pytest scripts/test_uploads.py
"""

import pytest

from app.utils import file_upload
from app.utils.file_upload import get_file_extension

JPEG = b"\xff\xd8\xff\xe0" + b"0" * 256


def test_get_file_extension():
    assert get_file_extension("photo.JPG") == ".jpg"
    assert get_file_extension("archive.tar.gz") == ".gz"
    assert get_file_extension("README") == ""


def test_upload_image(client, student, fake_integrations):
    response = client.post(
        "/api/upload",
        files={"file": ("room.jpg", JPEG, "image/jpeg")},
        data={"type": "image", "category": "profile"},
        headers=student["headers"],
    )
    assert response.status_code == 201
    assert response.json()["data"]["url"].startswith("https://res.cloudinary.com/")
    assert fake_integrations["uploads"] == [{"size": len(JPEG), "type": "image", "category": "profile"}]


def test_upload_requires_auth(client):
    response = client.post("/api/upload", files={"file": ("room.jpg", JPEG, "image/jpeg")})
    assert response.status_code == 401


@pytest.mark.parametrize("filename,content_type,media_type", [
    ("notes.pdf", "application/pdf", "image"),
    ("room.jpg", "image/jpeg", "video"),
])
def test_upload_rejects_wrong_type(client, student, filename, content_type, media_type):
    response = client.post(
        "/api/upload",
        files={"file": (filename, JPEG, content_type)},
        data={"type": media_type},
        headers=student["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid file type")


def test_upload_rejects_empty_and_large_files(client, student, monkeypatch):
    response = client.post(
        "/api/upload", files={"file": ("room.jpg", b"", "image/jpeg")}, headers=student["headers"]
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Empty file"

    monkeypatch.setitem(file_upload.MAX_SIZE_BYTES, "image", 100)
    response = client.post(
        "/api/upload", files={"file": ("room.jpg", JPEG, "image/jpeg")}, headers=student["headers"]
    )
    assert response.status_code == 413


def test_property_images_append_to_gallery(client, owner, room, fake_integrations):
    """[1] Uploaded photos are appended to the owner's listing."""
    response = client.post(
        "/api/upload/property",
        data={"propertyId": room["_id"]},
        files=[
            ("files", ("a.jpg", JPEG, "image/jpeg")),
            ("files", ("b.png", JPEG, "image/png")),
        ],
        headers=owner["headers"],
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert len(data["uploads"]) == 2
    assert data["images"] == [item["url"] for item in data["uploads"]]

    detail = client.get(f"/api/rooms/{room['_id']}").json()["data"]
    assert len(detail["images"]) == 2


def test_property_images_owner_only(client, owner, student, room):
    files = [("files", ("a.jpg", JPEG, "image/jpeg"))]
    response = client.post(
        "/api/upload/property", data={"propertyId": room["_id"]}, files=files, headers=student["headers"]
    )
    assert response.status_code == 403

    too_many = [("files", (f"{n}.jpg", JPEG, "image/jpeg")) for n in range(11)]
    response = client.post(
        "/api/upload/property", data={"propertyId": room["_id"]}, files=too_many, headers=owner["headers"]
    )
    assert response.status_code == 400


def test_upload_avatar_updates_profile(client, student, fake_integrations):
    response = client.post(
        "/api/profile/upload-avatar",
        files={"file": ("me.png", JPEG, "image/png")},
        headers=student["headers"],
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["profilePhoto"] == data["upload"]["url"]
    assert fake_integrations["uploads"][0]["category"] == "profile"


def test_delete_upload(client, student, fake_integrations):
    response = client.request(
        "DELETE",
        "/api/upload",
        json={"publicId": "student-nest/property/images/file1"},
        headers=student["headers"],
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"publicId": "student-nest/property/images/file1", "deleted": True}
    assert fake_integrations["deletes"] == ["student-nest/property/images/file1"]


def test_supported_formats(client):
    formats = client.get("/api/upload/formats").json()["data"]
    assert formats["image"]["max_size_mb"] == 10
    assert "video/mp4" in formats["video"]["types"]
