"""
users_api/core/middleware.py

Purpose: HTTP middleware stack

- Security headers on every response
- CORS policy from settings
- Request body size limit
- Access log line per request with request id and timing

Registration order matters: Starlette runs the last registered middleware
first, so register_middleware() adds them innermost to outermost.
"""

import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from users_api.core.config import Settings
from users_api.core.logging import get_logger, LogContext
from users_api.schemas.response import ErrorResponse

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
}

SLOW_REQUEST_SECONDS = 5.0


class BodySizeLimitMiddleware:
    """
    Rejects request bodies larger than max_bytes with 413.

    Counts the bytes actually received, so chunked bodies without a
    Content-Length are limited too. Accepted bodies are buffered and
    replayed to the app in one message.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        try:
            declared = int(length) if length is not None else None
        except ValueError:
            declared = None

        if declared is not None and declared > self.max_bytes:
            await self._reject(scope, receive, send, declared)
            return

        body = bytearray()
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body.extend(message.get("body", b""))
            if len(body) > self.max_bytes:
                await self._reject(scope, receive, send, len(body))
                return
            more_body = message.get("more_body", False)

        replayed = False

        async def replay_receive() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": bytes(body), "more_body": False}
            return await receive()

        await self.app(scope, replay_receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int):
        logger.info(f"Rejected body of at least {size} bytes on {scope['method']} {scope['path']}")
        response = JSONResponse(
            status_code=413,
            content=ErrorResponse(
                error="Request body too large",
                code="PAYLOAD_TOO_LARGE",
                details={"max_bytes": self.max_bytes}
            ).model_dump()
        )
        await response(scope, receive, send)


def register_middleware(app: FastAPI, settings: Settings):
    """
    Installs the middleware stack. Outermost first on the way in:
    security headers -> CORS -> body size limit -> access log -> routes.
    """

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        """Log one line per request and tag the response with id and timing."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start_time = time.perf_counter()

        with LogContext(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                logger.error(
                    f"{request.method} {request.url.path} 500 {duration_ms}ms",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": 500,
                        "duration_ms": duration_ms
                    }
                )
                raise

            process_time = time.perf_counter() - start_time
            duration_ms = round(process_time * 1000, 2)
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Process-Time"] = str(process_time)

            logger.info(
                f"{request.method} {request.url.path} {response.status_code} {duration_ms}ms",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms
                }
            )

            if process_time > SLOW_REQUEST_SECONDS:
                logger.warning(f"Slow request detected: {request.method} {request.url.path}")

        return response

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response
