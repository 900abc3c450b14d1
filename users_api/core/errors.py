from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from users_api.core.exceptions import UsersApiError
from users_api.core.logging import get_logger
from users_api.schemas.response import ErrorResponse

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Internal error"


def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else "unknown"
    }


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(UsersApiError)
    async def users_api_exception_handler(request: Request, exc: UsersApiError):
        if exc.status_code >= 500:
            # Full detail stays in the logs; the caller gets a generic message
            logger.error(
                f"Request failed: {exc.message}",
                extra=_request_context(request),
                exc_info=exc.__cause__ or exc
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=ErrorResponse(
                    error=GENERIC_ERROR_MESSAGE,
                    code=exc.code,
                    details=None
                ).model_dump()
            )

        logger.info(
            f"{exc.code}: {exc.message}",
            extra=_request_context(request)
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.message,
                code=exc.code,
                details=jsonable_encoder(exc.details)
            ).model_dump()
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (unknown routes, 405, etc.)
        """
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                code="HTTP_ERROR",
                details=None
            ).model_dump(),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles Pydantic validation errors as 400 with the violated constraints.
        """
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error="Input validation failed",
                code="VALIDATION_ERROR",
                details=jsonable_encoder(exc.errors())
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions. Never leaks internal detail.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra=_request_context(request),
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=GENERIC_ERROR_MESSAGE,
                code="INTERNAL_ERROR",
                details=None
            ).model_dump()
        )
