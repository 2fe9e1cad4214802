"""Filtering utilities for the guest list endpoint.

Filtering:
    - `?attending=yes|no|pending` - RSVP answer (pending = no answer yet)
    - `?checked_in=true` - Arrival flag
    - `?needs_accommodation=true` - Accommodation request
    - `?search=ali` - Case-insensitive substring over name and email

Example:
    GET /api/guests/list?attending=yes&checked_in=false&search=dupont
"""

from dataclasses import dataclass
from typing import Literal

from fastapi import Query

AttendanceFilter = Literal["yes", "no", "pending"]

# Longest accepted search string
_MAX_SEARCH_LENGTH = 100


@dataclass
class GuestFilters:
    """Guest list filters. None means "do not filter on this field".

    Attributes:
        attending: RSVP answer to match.
        checked_in: Arrival flag to match.
        needs_accommodation: Accommodation flag to match.
        search: Substring matched against name and email.
    """

    attending: AttendanceFilter | None = None
    checked_in: bool | None = None
    needs_accommodation: bool | None = None
    search: str | None = None


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally.

    Args:
        value: Raw search string.

    Returns:
        String with %, _ and the escape character itself escaped with a backslash.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def guest_filter_params(
    attending: AttendanceFilter | None = Query(
        default=None, description="RSVP answer: yes, no or pending"
    ),
    checked_in: bool | None = Query(default=None, description="Arrival flag"),
    needs_accommodation: bool | None = Query(
        default=None, description="Accommodation request flag"
    ),
    search: str | None = Query(
        default=None,
        max_length=_MAX_SEARCH_LENGTH,
        description="Substring of name or email",
    ),
) -> GuestFilters:
    """FastAPI dependency for guest list filters.

    Blank search strings are ignored.

    Returns:
        GuestFilters built from the query string.
    """
    cleaned_search = search.strip() if search else None
    return GuestFilters(
        attending=attending,
        checked_in=checked_in,
        needs_accommodation=needs_accommodation,
        search=cleaned_search or None,
    )
