"""Rate limiting configuration using slowapi.

Security: Slows down brute-force guessing of guest codes and of the admin
password. These limits are backpressure valves, not correctness mechanisms:
exceeding one yields a 429 rejection, nothing is queued.

Every limit is keyed by client IP. Route classes:
- global: every /api request (application-wide limit). SlowAPIMiddleware
  counts undecorated routes; routes with their own limit skip the middleware
  and stack @counts_toward_global_limit to share the same counter
- admin login: POST /api/auth/admin
- code verification: GET /api/guests/verify/{code}
- guest API: RSVP, check-in, event details

Usage in routers:
    from guestlist.core.rate_limiting import counts_toward_global_limit, limiter

    @router.post("/rsvp")
    @limiter.limit(settings.rate_limit_guest_api)
    @counts_toward_global_limit
    async def submit_rsvp(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from guestlist.core.config import settings
from guestlist.core.responses import ErrorResponse

RATE_LIMITED_MESSAGE = "Too many requests, please try again later"

# Scope slowapi gives application limits
GLOBAL_LIMIT_SCOPE = "global"


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Guests carry no identity beyond their code and the admin shares one
    password, so the client address is the only meaningful key.

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    return get_remote_address(request)


def global_rate_limit() -> str:
    """Application-wide limit, read on every request."""
    return settings.rate_limit_global


# Global limiter instance
# In-memory storage: counters live in this process only (single-instance
# deployment). For multi-instance, configure storage_uri to a shared backend.
limiter = Limiter(
    key_func=_rate_limit_key_func,
    application_limits=[global_rate_limit],
    enabled=settings.rate_limit_enabled,
)

# Same limit and scope as the application limit, so both paths hit one counter
counts_toward_global_limit = limiter.shared_limit(
    global_rate_limit, scope=GLOBAL_LIMIT_SCOPE
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error envelope and a
    user-facing retry message.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Retry-After is the length of the exceeded window (e.g., 1800 for
    # "5/30minute"). Fallback to 60 seconds if the limit is not attached.
    try:
        retry_after = str(int(exc.limit.limit.get_expiry()))
    except (AttributeError, TypeError, ValueError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            code="RATE_LIMITED",
            message=RATE_LIMITED_MESSAGE,
        ).model_dump(),
        headers={"Retry-After": retry_after},
    )
