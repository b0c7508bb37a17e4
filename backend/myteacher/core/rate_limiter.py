"""
Request throttling with slowapi.

Counters are shared through Redis when REDIS_URL is set and kept in process
memory otherwise. A caller with a valid bearer token is counted per user,
everyone else per client address, so a shared school network does not lock
out signed-in staff.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from myteacher.core.config import settings
from myteacher.core.exceptions import AuthenticationRequiredError, error_body
from myteacher.core.logging_config import logger
from myteacher.core.security import decode_token

AUTH_LIMIT = "5/minute"
AI_LIMIT = "10/minute"


def rate_limit_key(request: Request) -> str:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            subject = decode_token(token).get("sub")
        except AuthenticationRequiredError:
            subject = None
        if subject:
            return f"user:{subject}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.REDIS_URL or "memory://",
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # fixed windows here are all per-minute
    retry_after = 60
    logger.warning(
        f"Rate limit {exc.detail} exceeded by {rate_limit_key(request)} on {request.url.path}",
        extra={"event_type": "rate_limited"},
    )
    return JSONResponse(
        status_code=429,
        content=error_body(
            "ERR_API_RATE_LIMITED",
            "Too many requests. Please slow down.",
            {"limit": str(exc.detail), "retry_after_seconds": retry_after},
        ),
        headers={"Retry-After": str(retry_after)},
    )


def auth_rate_limit():
    """Login, registration and the Google callback"""
    return limiter.limit(AUTH_LIMIT)


def ai_operation_rate_limit():
    """Endpoints that call Claude"""
    return limiter.limit(AI_LIMIT)
