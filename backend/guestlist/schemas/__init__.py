"""Pydantic request/response schemas for API endpoints."""

from guestlist.schemas.auth import (
    AdminUser,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    VerifyResponse,
)
from guestlist.schemas.guest import (
    BulkGuestResponse,
    CheckInResponse,
    EventDetailsResponse,
    GuestAdminResponse,
    GuestAdminView,
    GuestBulkRequest,
    GuestCreateRequest,
    GuestPublicResponse,
    GuestPublicView,
    GuestStatsResponse,
    GuestUpdateRequest,
    RSVPRequest,
    RSVPResponse,
    ScannedCheckInRequest,
)

__all__ = [
    # Admin authentication
    "AdminUser",
    "LoginRequest",
    "LoginResponse",
    "RefreshRequest",
    "RefreshResponse",
    "VerifyResponse",
    # Guests
    "BulkGuestResponse",
    "CheckInResponse",
    "EventDetailsResponse",
    "GuestAdminResponse",
    "GuestAdminView",
    "GuestBulkRequest",
    "GuestCreateRequest",
    "GuestPublicResponse",
    "GuestPublicView",
    "GuestStatsResponse",
    "GuestUpdateRequest",
    "RSVPRequest",
    "RSVPResponse",
    "ScannedCheckInRequest",
]
