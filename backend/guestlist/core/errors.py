"""API error classes.

Every error carries a machine-readable code, a client-safe message and the
HTTP status the exception handlers in ``guestlist.main`` answer with.

Services raise these without knowing about HTTP; the envelope is always
``{"success": false, "message": ..., "code": ..., "details": ...}``.
"""


class APIError(Exception):
    """Base class for API errors.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message, safe to show to clients.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Malformed input (400). User-correctable."""

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Missing credential or wrong password (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Credential present but not acceptable (403).

    Token failures always use the default message, whatever the cause
    (malformed, expired, wrong signature, revoked).
    """

    def __init__(
        self, message: str = "Invalid or expired token", code: str = "FORBIDDEN"
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404).

    Guest lookups by code never say whether the code exists with another
    email or does not exist at all: from the caller's side the resource
    simply does not exist.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts a custom code for specific conflict types
    (DUPLICATE_EMAIL, CODE_GENERATION_FAILED).
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class PreconditionError(APIError):
    """Business precondition not met (400).

    E.g., checking in a guest who never confirmed attendance.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=400,
        )


class InfrastructureError(APIError):
    """Storage or configuration failure (500).

    The client only ever sees the generic message; the cause is logged
    server-side by whoever raises this.
    """

    def __init__(self, message: str = "Server error") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
