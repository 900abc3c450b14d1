"""
users_api/services/upload_service.py

Purpose: Upload grants for the avatar bucket

- Presigned PUT URLs bound to one key and one content type
- Deterministic public URL for the same key
- Server-generated timestamped keys for the legacy endpoint
- Never touches DynamoDB
"""

from typing import Any, Optional
from urllib.parse import quote

from starlette.concurrency import run_in_threadpool

from users_api.core.exceptions import UnexpectedError
from users_api.core.logging import get_logger
from users_api.schemas.upload import UploadGrant
from users_api.utils.time_utils import epoch_millis, expires_at

logger = get_logger(__name__)

DEFAULT_EXPIRES_IN = 900  # 15 minutes
LEGACY_KEY_PREFIX = "avatars/"


def s3_object_url(bucket: str, region: str, key: str, endpoint_url: Optional[str] = None) -> str:
    """
    Public URL of an object.

    Virtual-hosted style on AWS; path style when a custom endpoint
    (MinIO, LocalStack) is configured.
    """
    quoted_key = quote(key, safe="/")
    if endpoint_url:
        return f"{endpoint_url.rstrip('/')}/{bucket}/{quoted_key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{quoted_key}"


def timestamped_key(filename: str, now: Optional[float] = None) -> str:
    """avatars/<epoch millis>_<filename>"""
    return f"{LEGACY_KEY_PREFIX}{epoch_millis(now)}_{filename}"


class UploadService:
    """
    Issues presigned upload URLs for a single bucket.

    Args:
        s3_client: boto3 S3 client (see users_api.db.aws)
        bucket: target bucket
        region: bucket region, used in public URLs
        expires_in: presigned URL lifetime in seconds
        endpoint_url: custom S3 endpoint, if any
    """

    def __init__(
        self,
        s3_client: Any,
        bucket: str,
        region: str,
        expires_in: int = DEFAULT_EXPIRES_IN,
        endpoint_url: Optional[str] = None,
    ):
        self.s3_client = s3_client
        self.bucket = bucket
        self.region = region
        self.expires_in = expires_in
        self.endpoint_url = endpoint_url

    def object_url(self, key: str) -> str:
        return s3_object_url(self.bucket, self.region, key, self.endpoint_url)

    async def create_grant(self, key: str, content_type: str) -> UploadGrant:
        """
        Signs a PUT for key with the given Content-Type.

        Raises:
            UnexpectedError: signing failed (no credentials, bad config)
        """
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "ContentType": content_type,
        }

        try:
            upload_url = await run_in_threadpool(
                self.s3_client.generate_presigned_url,
                "put_object",
                Params=params,
                ExpiresIn=self.expires_in,
            )
        except Exception as e:
            raise UnexpectedError(f"Could not generate presigned URL: {e}") from e

        logger.info(
            f"Upload grant issued for {key} ({content_type}), "
            f"valid until {expires_at(self.expires_in).isoformat()}"
        )

        return UploadGrant(
            key=key,
            content_type=content_type,
            upload_url=upload_url,
            object_url=self.object_url(key),
            expires_in=self.expires_in,
        )

    async def create_legacy_grant(self, filename: str, content_type: str) -> UploadGrant:
        """Same grant, under a server-generated avatars/<millis>_<filename> key."""
        return await self.create_grant(timestamped_key(filename), content_type)
