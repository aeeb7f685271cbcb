"""Rate limiting for the storefront API.

Uses slowapi; state lives in Redis when ``REDIS_URL`` is configured so limits
hold across workers, and in process memory otherwise.
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
    """
    Get client IP from request, handling proxies.

    Checks X-Forwarded-For header first (for proxied requests),
    then falls back to direct connection IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def _get_user_or_ip(request: Request) -> str:
    """Limit per authenticated user when known, otherwise per client IP."""
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.user_id}"
    return f"ip:{_get_client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=_get_user_or_ip,
        default_limits=["200/minute"],
        storage_uri=settings.REDIS_URL or "memory://",
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """JSON 429 with a Retry-After hint."""
    retry_after = exc.detail.split("per")[0].strip() if exc.detail else "1 minute"

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many requests. Limit: {retry_after}.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


def auth_limit(func: Callable) -> Callable:
    """Login, registration and token refresh (5/minute)."""
    return limiter.limit("5/minute")(func)


def payment_limit(func: Callable) -> Callable:
    """Payment creation and manual payment submission (10/minute)."""
    return limiter.limit("10/minute")(func)


def api_limit(func: Callable) -> Callable:
    """Storefront and account routes (``RATE_LIMIT_API``, 100/minute)."""
    return limiter.limit(lambda: get_settings().RATE_LIMIT_API)(func)


def admin_limit(func: Callable) -> Callable:
    """Back-office routes (``RATE_LIMIT_ADMIN``, 300/minute)."""
    return limiter.limit(lambda: get_settings().RATE_LIMIT_ADMIN)(func)
