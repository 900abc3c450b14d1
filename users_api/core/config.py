"""
users_api/core/config.py

Purpose: Application configuration

- Loads environment variables (and an optional .env file)
- Centralizes AWS resource names, limits and HTTP settings
- Validates configuration on startup
- AWS credentials are NOT configured here; boto3 resolves them from the
  ambient environment (env vars, shared config, instance role)
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# S3 SigV4 presigned URLs cannot outlive seven days
MAX_PRESIGN_EXPIRY_SECONDS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    BUCKET_NAME has no default; validate_settings() refuses to start without it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # AWS
    AWS_REGION: str = Field(
        default="us-east-1",
        description="Region for DynamoDB, S3 and public object URLs"
    )
    TABLE_NAME: str = Field(
        default="users",
        description="DynamoDB table holding user records"
    )
    BUCKET_NAME: Optional[str] = Field(
        default=None,
        description="S3 bucket receiving avatar uploads (required)"
    )
    DYNAMODB_ENDPOINT_URL: Optional[str] = Field(
        default=None,
        description="Override endpoint, e.g. DynamoDB Local"
    )
    S3_ENDPOINT_URL: Optional[str] = Field(
        default=None,
        description="Override endpoint, e.g. MinIO or LocalStack"
    )
    AWS_CONNECT_TIMEOUT: float = Field(default=5, gt=0)
    AWS_READ_TIMEOUT: float = Field(default=10, gt=0)
    AWS_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="botocore standard retry mode attempts"
    )

    # Uploads
    UPLOAD_URL_EXPIRES_SECONDS: int = Field(
        default=900,
        description="Lifetime of presigned upload URLs (15 minutes)"
    )

    # Users
    USERS_SCAN_LIMIT: int = Field(
        default=100,
        description="Maximum items returned by GET /users"
    )

    # HTTP
    APP_PORT: int = Field(default=3000, description="Listening port")
    CORS_ORIGIN: str = Field(
        default="*",
        description="Allowed CORS origin(s), comma separated"
    )
    MAX_BODY_BYTES: int = Field(
        default=2 * 1024 * 1024,
        description="Maximum accepted request body size"
    )

    # Application
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @field_validator("BUCKET_NAME", "DYNAMODB_ENDPOINT_URL", "S3_ENDPOINT_URL")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from the environment as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def cors_origins(self) -> List[str]:
        """CORS_ORIGIN split into a list of origins."""
        origins = [origin.strip() for origin in self.CORS_ORIGIN.split(",")]
        return [origin for origin in origins if origin] or ["*"]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Returns the process-wide settings, loaded once."""
    return Settings()


def validate_settings(settings: Settings) -> bool:
    """
    Validates critical settings on application startup.
    Raises ValueError listing every missing or invalid setting.
    """
    errors = []

    if not settings.BUCKET_NAME:
        errors.append("BUCKET_NAME is required")

    if not settings.TABLE_NAME:
        errors.append("TABLE_NAME is required")

    if not settings.AWS_REGION:
        errors.append("AWS_REGION is required")

    if not 1 <= settings.UPLOAD_URL_EXPIRES_SECONDS <= MAX_PRESIGN_EXPIRY_SECONDS:
        errors.append(
            f"UPLOAD_URL_EXPIRES_SECONDS must be between 1 and {MAX_PRESIGN_EXPIRY_SECONDS}"
        )

    if settings.USERS_SCAN_LIMIT < 1:
        errors.append("USERS_SCAN_LIMIT must be positive")

    if settings.MAX_BODY_BYTES < 1:
        errors.append("MAX_BODY_BYTES must be positive")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
