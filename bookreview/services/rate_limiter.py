"""
Rate Limiting

slowapi limiter shared by every router. Endpoints opt in with
`@limiter.limit(...)` and must accept a `request: Request` argument.

Tiers (see Settings):
- rate_limit_default: reads
- rate_limit_search: GET /books/search
- rate_limit_write: book/review writes, helpful votes, reports
- fixed literals on /auth/register, /auth/login and password changes

Signed-in callers are limited per user, so several readers behind one NAT
don't share a bucket; anonymous callers are limited per client IP.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from bookreview.config import get_settings
from bookreview.services.security import ACCESS_TOKEN, token_subject

logger = logging.getLogger(__name__)
settings = get_settings()

RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_rate_limit_key(request: Request) -> str:
    """
    Bucket key for a request: "user:<id>" with a valid access token,
    "ip:<address>" otherwise.
    """
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        user_id = token_subject(token, ACCESS_TOKEN)
        if user_id is not None:
            return f"user:{user_id}"
    return f"ip:{get_client_ip(request)}"


def create_limiter() -> Limiter:
    limiter = Limiter(
        key_func=get_rate_limit_key,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )
    logger.info(
        f"Rate limiting {'on' if settings.rate_limit_enabled else 'off'} "
        f"(reads {settings.rate_limit_default}, writes {settings.rate_limit_write})"
    )
    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same JSON shape as the domain errors, plus Retry-After."""
    limit = str(exc.detail)
    logger.warning(f"Rate limit {limit} hit by {get_rate_limit_key(request)} on {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "error": "rate_limit_exceeded",
            "limit": limit,
        },
        headers={
            "Retry-After": str(RETRY_AFTER_SECONDS),
            "X-RateLimit-Limit": limit,
        },
    )
