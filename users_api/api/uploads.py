"""
users_api/api/uploads.py

Purpose: Avatar upload endpoints

- POST /uploads/avatar-url: caller picks the key, returns {uploadUrl, s3Url}
- GET /generate-presigned-url: older clients; the server picks the key,
  returns {uploadUrl, fileUrl}

Clients PUT the file straight to S3 with the returned URL and the same
Content-Type, then store the public URL as the user's avatar.
"""

from fastapi import APIRouter, Depends, Query

from users_api.api.deps import get_upload_service
from users_api.schemas.upload import (
    AvatarUploadRequest,
    AvatarUploadResponse,
    LegacyUploadResponse,
)
from users_api.services.upload_service import UploadService

router = APIRouter()


@router.post("/uploads/avatar-url", response_model=AvatarUploadResponse)
async def create_avatar_upload_url(
    req: AvatarUploadRequest,
    uploads: UploadService = Depends(get_upload_service),
):
    grant = await uploads.create_grant(req.key, req.content_type)
    return AvatarUploadResponse(upload_url=grant.upload_url, s3_url=grant.object_url)


@router.get("/generate-presigned-url", response_model=LegacyUploadResponse)
async def generate_presigned_url(
    filename: str = Query(..., min_length=1, description="Original file name"),
    filetype: str = Query(..., min_length=3, description="Content-Type of the upload"),
    uploads: UploadService = Depends(get_upload_service),
):
    """
    Legacy variant: key is avatars/<epoch millis>_<filename>.
    """
    grant = await uploads.create_legacy_grant(filename, filetype)
    return LegacyUploadResponse(upload_url=grant.upload_url, file_url=grant.object_url)
