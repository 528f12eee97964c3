"""
Request logging middleware for FastAPI application.

Plain ASGI middleware rather than BaseHTTPMiddleware, so the request's
``receive`` channel reaches the endpoint untouched and client disconnects
stay visible to long-running sync requests.
"""

import logging
import time
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class RequestLoggingMiddleware:
    """
    Logs method, path, status and duration of each HTTP request.

    Reuses the caller's X-Correlation-ID or issues a new one, and echoes it
    on the response.
    """

    EXCLUDE_PATHS: tuple[str, ...] = (
        "/health",
        "/favicon.ico",
    )

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        correlation_id = headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:8]
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        path = scope.get("path", "")
        method = scope.get("method", "")
        quiet = any(path.startswith(prefix) for prefix in self.EXCLUDE_PATHS)
        user_id = headers.get("X-User-ID", "-")
        start = time.perf_counter()
        status_code = 500

        if not quiet:
            logger.info(f"[{correlation_id}] --> {method} {path} user={user_id}")

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                response_headers = MutableHeaders(scope=message)
                response_headers[CORRELATION_HEADER] = correlation_id
                response_headers["X-Response-Time-Ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as e:
            logger.error(
                f"[{correlation_id}] <-- {method} {path} ERROR in {(time.perf_counter() - start) * 1000:.2f}ms: {e}"
            )
            raise

        if not quiet:
            level = logging.WARNING if status_code >= 400 else logging.INFO
            logger.log(
                level,
                f"[{correlation_id}] <-- {method} {path} {status_code} in {(time.perf_counter() - start) * 1000:.2f}ms",
            )
