"""Admin authentication endpoints.

POST /api/auth/admin   - password login, returns an access token and sets
                         the refresh token cookie
POST /api/auth/verify  - check an access token, return its claims
POST /api/auth/refresh - rotate the refresh token, return a new access token
POST /api/auth/logout  - revoke the refresh token and clear the cookie
"""

from fastapi import APIRouter, Request, Response

from guestlist.api.deps import CurrentAdmin, TokenServiceDep
from guestlist.core.auth import (
    TokenInvalidError,
    clear_refresh_cookie,
    set_refresh_cookie,
)
from guestlist.core.config import settings
from guestlist.core.errors import ForbiddenError, UnauthorizedError
from guestlist.core.rate_limiting import counts_toward_global_limit, limiter
from guestlist.core.responses import SuccessResponse
from guestlist.schemas.auth import (
    AdminUser,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    VerifyResponse,
)

router = APIRouter()


def _presented_refresh_token(request: Request, body: RefreshRequest | None) -> str | None:
    """Refresh token from the cookie, else from the JSON body."""
    token = request.cookies.get(settings.refresh_cookie_name)
    if not token and body is not None:
        token = body.refresh_token
    return token or None


@router.post("/admin")
@limiter.limit(settings.rate_limit_login)
@counts_toward_global_limit
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    token_service: TokenServiceDep,
) -> LoginResponse:
    """Log the admin in with the shared password.

    Wrong passwords answer 401 after a randomized delay.
    """
    pair = await token_service.login(
        body.password, user_agent=request.headers.get("User-Agent")
    )
    set_refresh_cookie(response, pair.refresh_token)
    return LoginResponse(
        message="Login successful",
        access_token=pair.access_token,
        expires_in=pair.expires_in,
    )


@router.post("/verify")
async def verify(admin: CurrentAdmin) -> VerifyResponse:
    """Return the claims of the presented access token."""
    return VerifyResponse(
        user=AdminUser(
            admin_id=admin.admin_id,
            role=admin.role,
            exp=int(admin.exp.timestamp()),
        )
    )


@router.post("/refresh")
async def refresh(
    request: Request,
    response: Response,
    token_service: TokenServiceDep,
    body: RefreshRequest | None = None,
) -> RefreshResponse:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is consumed; the successor is set as the
    new cookie.
    """
    token = _presented_refresh_token(request, body)
    if token is None:
        raise UnauthorizedError("Refresh token required")

    try:
        pair = token_service.refresh(
            token, user_agent=request.headers.get("User-Agent")
        )
    except TokenInvalidError:
        raise ForbiddenError() from None

    set_refresh_cookie(response, pair.refresh_token)
    return RefreshResponse(
        access_token=pair.access_token,
        expires_in=pair.expires_in,
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    token_service: TokenServiceDep,
    body: RefreshRequest | None = None,
) -> SuccessResponse:
    """Revoke the refresh token. Always succeeds."""
    token_service.logout(_presented_refresh_token(request, body))
    clear_refresh_cookie(response)
    return SuccessResponse(message="Logged out")
