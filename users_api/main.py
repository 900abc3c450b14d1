"""
users_api/main.py

Purpose: Application entry point

- Builds the FastAPI app (create_app) from settings and AWS handles
- Loads configuration and logging
- Registers middleware, exception handlers and API routes
- No business logic should be written here
- Manages application lifecycle (startup validation)
"""

import sys
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from users_api.api import uploads, users
from users_api.core.config import Settings, get_settings, validate_settings
from users_api.core.errors import add_exception_handlers
from users_api.core.logging import setup_logging, get_logger
from users_api.core.middleware import register_middleware
from users_api.db.aws import check_table_health, create_s3_client, create_users_table
from users_api.schemas.response import HealthResponse
from users_api.services.upload_service import UploadService
from users_api.services.user_service import UserService

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Refuses to start when configuration is invalid.
    """
    settings: Settings = app.state.settings
    logger.info("Starting users API...")

    try:
        validate_settings(settings)
        logger.info("Configuration validated")
    except ValueError as e:
        logger.critical(f"Failed to start application: {str(e)}")
        raise

    if await check_table_health(app.state.table):
        logger.info(f"Table {settings.TABLE_NAME} reachable")
    else:
        logger.warning(f"Table {settings.TABLE_NAME} not reachable at startup")

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Bucket: {settings.BUCKET_NAME} ({settings.AWS_REGION})")

    yield  # Application runs here

    logger.info("Users API shut down")


def create_app(
    settings: Optional[Settings] = None,
    table: Optional[Any] = None,
    s3_client: Optional[Any] = None,
) -> FastAPI:
    """
    Builds the application.

    Args:
        settings: defaults to settings loaded from the environment
        table: boto3 DynamoDB Table; built from settings when omitted
        s3_client: boto3 S3 client; built from settings when omitted

    Returns:
        Configured FastAPI app with services on app.state
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Users API",
        description="User records in DynamoDB and presigned avatar uploads to S3",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    table = table if table is not None else create_users_table(settings)
    s3_client = s3_client if s3_client is not None else create_s3_client(settings)

    app.state.settings = settings
    app.state.table = table
    app.state.s3_client = s3_client
    app.state.user_service = UserService(table, scan_limit=settings.USERS_SCAN_LIMIT)
    app.state.upload_service = UploadService(
        s3_client,
        bucket=settings.BUCKET_NAME,
        region=settings.AWS_REGION,
        expires_in=settings.UPLOAD_URL_EXPIRES_SECONDS,
        endpoint_url=settings.S3_ENDPOINT_URL,
    )

    register_middleware(app, settings)
    add_exception_handlers(app)

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health_check():
        """Liveness: the process is up. Does not touch AWS."""
        return HealthResponse(ok=True)

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """
        Readiness probe - the users table is reachable.
        """
        if await check_table_health(request.app.state.table):
            return {"status": "ready"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "table_unavailable"}
        )

    app.include_router(users.router, tags=["Users"])
    app.include_router(uploads.router, tags=["Uploads"])

    return app


def run():
    """Console entry point: validate configuration, then serve with uvicorn."""
    import uvicorn

    settings = get_settings()
    try:
        validate_settings(settings)
    except ValueError as e:
        logger.critical(str(e))
        sys.exit(1)

    uvicorn.run(
        "users_api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.is_development and settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
