"""Admin authentication request/response schemas.

Request bodies reject unknown fields (extra="forbid").
"""

from pydantic import ConfigDict, Field

from guestlist.core.responses import CamelModel, SuccessResponse

# bcrypt ignores bytes past 72; anything far longer is not a password
_MAX_PASSWORD_LENGTH = 128


class LoginRequest(CamelModel):
    """Request body for POST /api/auth/admin."""

    model_config = ConfigDict(extra="forbid")

    password: str = Field(..., min_length=1, max_length=_MAX_PASSWORD_LENGTH)


class RefreshRequest(CamelModel):
    """Optional body for POST /api/auth/refresh and /api/auth/logout.

    The refresh token is normally sent as a cookie; clients that cannot use
    cookies send it here instead.
    """

    model_config = ConfigDict(extra="forbid")

    refresh_token: str | None = Field(default=None, max_length=2048)


class LoginResponse(SuccessResponse):
    """Response of a successful login.

    Attributes:
        access_token: Bearer token for admin endpoints.
        expires_in: Access token lifetime in seconds.
        token_type: Always "Bearer".
    """

    access_token: str
    expires_in: int
    token_type: str = "Bearer"


class RefreshResponse(SuccessResponse):
    """Response of a successful refresh."""

    access_token: str
    expires_in: int


class AdminUser(CamelModel):
    """Claims of the current admin session.

    Attributes:
        admin_id: Session identifier minted at login.
        role: Always "admin".
        exp: Access token expiry as a Unix timestamp.
    """

    admin_id: str
    role: str
    exp: int


class VerifyResponse(SuccessResponse):
    """Response of POST /api/auth/verify."""

    user: AdminUser
