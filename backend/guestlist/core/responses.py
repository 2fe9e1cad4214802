"""Response envelope models.

Consistent response format for all API endpoints:
- success: ``{"success": true, "message": ..., <payload fields>}``
- error:   ``{"success": false, "message": ..., "code": ..., "details": ...}``

Wire keys are camelCase (``accessToken``, ``guestsCount``) while Python
attributes stay snake_case; ``CamelModel`` does the mapping.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys.

    Accepts both the alias and the field name on input so request bodies
    can be sent as ``{"guestsCount": 2}`` and tests can build models with
    ``guests_count=2``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    """Base envelope for successful responses.

    Endpoint-specific responses subclass this and add their payload.
    """

    success: bool = True
    message: str | None = None


class PaginationMeta(CamelModel):
    """Pagination metadata for collections.

    Attributes:
        total: Total number of items across all pages.
        page: Current page number (1-indexed).
        limit: Number of items per page.
    """

    total: int
    page: int
    limit: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        """Calculate total number of pages.

        Returns:
            Number of pages needed to display all items.
            Returns 0 if total is 0.
        """
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


class ListResponse(SuccessResponse, Generic[T]):
    """Standard response envelope for collections.

    Usage:
        @router.get("/list")
        async def list_guests(...) -> ListResponse[GuestAdminView]:
            guests, total = await GuestRepository.list_page(...)
            return ListResponse(
                data=[GuestAdminView.model_validate(g) for g in guests],
                pagination=PaginationMeta(total=total, page=page, limit=limit),
            )
    """

    data: list[T]
    pagination: PaginationMeta


class ErrorResponse(CamelModel):
    """Standard error response envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(code=exc.code, message=exc.message).model_dump(),
        )
    """

    success: bool = False
    message: str
    code: str
    details: list[dict] | None = None
