"""
MyTeacher - HTTP Middleware

- RequestLoggingMiddleware: request ids, timing and access logging
- SecurityHeadersMiddleware: browser hardening; student data is never cached
- RequestSizeLimitMiddleware: rejects oversized bodies before they are read
"""

import re
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from myteacher.core.exceptions import error_body
from myteacher.core.logging_config import bind_context, clear_context, logger, new_request_id

QUIET_PATHS = frozenset({"/", "/health", "/favicon.ico", "/docs", "/redoc", "/openapi.json"})

# /api/v1/students/<id>/... binds the student to the log context
STUDENT_PATH = re.compile(r"/students/([0-9a-fA-F-]{36})(?:/|$)")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    SLOW_REQUEST_MS = 1000

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        path = request.url.path
        student = STUDENT_PATH.search(path)
        bind_context(request_id=request_id, student_id=student.group(1) if student else None)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            logger.exception(f"{request.method} {path} raised after {elapsed:.1f}ms")
            clear_context()
            raise

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.1f}ms"

        if path not in QUIET_PATHS:
            logger.log_request(
                request.method, path, response.status_code, elapsed,
                client_ip=request.client.host if request.client else None,
            )
            if elapsed > self.SLOW_REQUEST_MS:
                logger.log_slow_request(request.method, path, elapsed, self.SLOW_REQUEST_MS)

        clear_context()
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        if request.url.path.startswith("/api/"):
            response.headers.setdefault("Cache-Control", "no-store")
            response.headers.setdefault("Pragma", "no-cache")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Uses Content-Length; chunked bodies are bounded by the upload validators"""

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(f"Rejected {request.method} {request.url.path}: body of {declared} bytes")
            return JSONResponse(
                status_code=413,
                content=error_body(
                    "ERR_API_PAYLOAD_TOO_LARGE",
                    f"Request body exceeds {self.max_size // (1024 * 1024)}MB",
                    {"max_size": self.max_size},
                ),
            )
        return await call_next(request)
