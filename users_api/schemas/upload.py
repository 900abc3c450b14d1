from pydantic import BaseModel, ConfigDict, Field


class AvatarUploadRequest(BaseModel):
    """
    Body of POST /uploads/avatar-url.
    key is the full object key, e.g. "avatars/<userId>.jpg".
    """
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(min_length=1, strict=True)
    content_type: str = Field(alias="contentType", min_length=3, strict=True)


class UploadGrant(BaseModel):
    """A presigned PUT URL plus the public URL the object will have."""
    key: str
    content_type: str
    upload_url: str
    object_url: str
    expires_in: int


class AvatarUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(alias="uploadUrl")
    s3_url: str = Field(alias="s3Url")


class LegacyUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(alias="uploadUrl")
    file_url: str = Field(alias="fileUrl")
