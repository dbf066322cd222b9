"""Rate limiting with slowapi.

Limits are keyed by client IP. Storage defaults to in-process memory; point
``RATE_LIMIT_STORAGE_URI`` at Redis when running more than one worker.
Decorated endpoints must accept a ``request: Request`` parameter.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First hop is the original client
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=_get_client_ip,
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 in the same shape as other service errors."""
    limit = f" ({exc.detail})" if exc.detail else ""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded{limit}. Try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def auth_limit(func: Callable) -> Callable:
    """Login, registration and password-reset requests (``AUTH_RATE_LIMIT``)."""
    return limiter.limit(get_settings().AUTH_RATE_LIMIT)(func)


def ai_limit(func: Callable) -> Callable:
    """Calls that reach the paid text-generation API (``AI_RATE_LIMIT``)."""
    return limiter.limit(get_settings().AI_RATE_LIMIT)(func)
