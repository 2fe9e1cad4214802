"""Pagination utilities.

page (default 1), limit (default 20, max 100). The guest list returns a
total count alongside each page so clients can compute page numbers.
"""

from dataclasses import dataclass

from fastapi import Query


@dataclass
class PaginationParams:
    """Pagination query parameters.

    Attributes:
        page: Current page number (1-indexed).
        limit: Number of items per page.
    """

    page: int
    limit: int

    @property
    def offset(self) -> int:
        """Number of items to skip (0 for page 1)."""
        return (self.page - 1) * self.limit


def pagination_params(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(
        default=20,
        ge=1,
        le=100,
        description="Items per page (max 100)",
    ),
) -> PaginationParams:
    """FastAPI dependency for pagination query parameters.

    Usage:
        @router.get("/list")
        async def list_guests(
            pagination: PaginationParams = Depends(pagination_params)
        ):
            guests, total = await GuestRepository.list_page(
                db, filters, offset=pagination.offset, limit=pagination.limit
            )
            ...

    Args:
        page: Page number (default 1, must be >= 1).
        limit: Items per page (default 20, between 1 and 100).

    Returns:
        PaginationParams with validated page and limit.
    """
    return PaginationParams(page=page, limit=limit)
