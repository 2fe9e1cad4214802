"""Guest request/response schemas.

Free text (names, welcome messages, RSVP messages) is sanitized here, at
the boundary, so services only ever see clean values. Request bodies reject
unknown fields.
"""

import uuid
from datetime import datetime

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from guestlist.core.responses import CamelModel, SuccessResponse
from guestlist.core.text_sanitization import MAX_MESSAGE_LENGTH, sanitize_text
from guestlist.models.guest import MAX_GUESTS_COUNT
from guestlist.services.code_generator import extract_code, is_valid_code

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100

# Raw input cap, checked before sanitizing
_MAX_RAW_TEXT_LENGTH = 5000
_MAX_BULK_GUESTS = 500


def _clean_name(value: str) -> str:
    """Sanitize a guest name and check its length."""
    cleaned = sanitize_text(value)
    if len(cleaned) < MIN_NAME_LENGTH:
        msg = f"name must be at least {MIN_NAME_LENGTH} characters"
        raise ValueError(msg)
    if len(cleaned) > MAX_NAME_LENGTH:
        msg = f"name must be at most {MAX_NAME_LENGTH} characters"
        raise ValueError(msg)
    return cleaned


def _clean_welcome_message(value: str | None) -> str | None:
    """Sanitize a welcome message; blank becomes None."""
    if value is None:
        return None
    return sanitize_text(value, MAX_MESSAGE_LENGTH) or None


# =============================================================================
# Requests
# =============================================================================


class GuestCreateRequest(CamelModel):
    """Request body for POST /api/guests (and one entry of a bulk request)."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., max_length=_MAX_RAW_TEXT_LENGTH)
    email: EmailStr
    personal_welcome_message: str | None = Field(
        default=None, max_length=_MAX_RAW_TEXT_LENGTH
    )

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        """Strip markup and enforce the name length."""
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are stored and compared lowercase."""
        return v.lower()

    @field_validator("personal_welcome_message")
    @classmethod
    def clean_welcome_message(cls, v: str | None) -> str | None:
        """Strip markup from the welcome message."""
        return _clean_welcome_message(v)


class GuestBulkRequest(CamelModel):
    """Request body for POST /api/guests/generate-guest-list."""

    model_config = ConfigDict(extra="forbid")

    guests: list[GuestCreateRequest] = Field(
        ..., min_length=1, max_length=_MAX_BULK_GUESTS
    )


class GuestUpdateRequest(CamelModel):
    """Request body for PATCH /api/guests/{id}. At least one field is required."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=_MAX_RAW_TEXT_LENGTH)
    personal_welcome_message: str | None = Field(
        default=None, max_length=_MAX_RAW_TEXT_LENGTH
    )

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str | None) -> str | None:
        """Strip markup and enforce the name length."""
        return None if v is None else _clean_name(v)

    @field_validator("personal_welcome_message")
    @classmethod
    def clean_welcome_message(cls, v: str | None) -> str | None:
        """Strip markup from the welcome message."""
        return _clean_welcome_message(v)

    @model_validator(mode="after")
    def require_a_change(self) -> "GuestUpdateRequest":
        """Reject empty updates."""
        if self.name is None and self.personal_welcome_message is None:
            msg = "at least one of name or personalWelcomeMessage is required"
            raise ValueError(msg)
        return self


class RSVPRequest(CamelModel):
    """Request body for POST /api/guests/rsvp.

    The code must be sent together with the email it was issued for.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    code: str = Field(..., max_length=64)
    attending: bool
    guests_count: int = Field(default=0, ge=0, le=MAX_GUESTS_COUNT)
    needs_accommodation: bool = False
    message: str | None = Field(default=None, max_length=_MAX_RAW_TEXT_LENGTH)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        """Lowercase the code and check its shape."""
        code = v.strip().lower()
        if not is_valid_code(code):
            msg = "code must be 12 to 32 hexadecimal characters"
            raise ValueError(msg)
        return code


class ScannedCheckInRequest(CamelModel):
    """Request body for POST /api/guests/check-in.

    Carries whatever the door scanner read: the invitation URL or a bare code.
    """

    model_config = ConfigDict(extra="forbid")

    scanned: str = Field(..., min_length=1, max_length=2048)

    @field_validator("scanned")
    @classmethod
    def extract_guest_code(cls, v: str) -> str:
        """Reduce the scanned payload to a guest code."""
        code = extract_code(v)
        if code is None:
            msg = "scanned payload does not contain a guest code"
            raise ValueError(msg)
        return code


# =============================================================================
# Views
# =============================================================================


class GuestPublicView(CamelModel):
    """What a guest sees of their own record when presenting their code."""

    name: str
    attending: bool | None
    guests_count: int
    needs_accommodation: bool
    message: str | None
    has_checked_in: bool
    rsvp_status: str


class GuestWelcomeView(CamelModel):
    """Guest fields shown on the check-in screen."""

    name: str
    personal_welcome_message: str


class GuestAdminView(CamelModel):
    """Full guest record, for the organizer."""

    id: uuid.UUID
    name: str
    email: str
    unique_code: str
    attending: bool | None
    guests_count: int
    needs_accommodation: bool
    message: str | None
    personal_welcome_message: str
    has_checked_in: bool
    check_in_time: datetime | None
    qr_code_url: str | None
    responded_at: datetime | None
    rsvp_status: str
    created_at: datetime
    updated_at: datetime


class GuestStatsView(CamelModel):
    """Aggregate guest statistics."""

    total_guests: int
    responded_guests: int
    attending_guests: int
    declined_guests: int
    pending_guests: int
    checked_in_guests: int
    total_attendees: int
    accommodation_needed: int
    response_rate: int
    confirmation_rate: int
    check_in_rate: int


class EventDetailsView(CamelModel):
    """Venue and accommodation details for confirmed guests."""

    name: str
    location_name: str
    address: str
    latitude: float | None
    longitude: float | None
    access_info: str
    parking_info: str
    accommodation_check_in: str
    accommodation_check_out: str
    amenities: list[str]
    additional_info: str


class ProvisioningFailureView(CamelModel):
    """One failed entry of a bulk request."""

    email: str
    code: str
    message: str


# =============================================================================
# Responses
# =============================================================================


class GuestPublicResponse(SuccessResponse):
    """Response of GET /api/guests/verify/{code}."""

    guest: GuestPublicView


class GuestAdminResponse(SuccessResponse):
    """Response carrying one full guest record."""

    guest: GuestAdminView


class RSVPResponse(SuccessResponse):
    """Response of POST /api/guests/rsvp."""

    location_access: bool
    guest: GuestPublicView


class CheckInResponse(SuccessResponse):
    """Response of POST /api/guests/check-in and /check-in/{code}."""

    already_checked_in: bool
    check_in_time: datetime | None
    guest: GuestWelcomeView


class EventDetailsResponse(SuccessResponse):
    """Response of GET /api/guests/event-details/{code}."""

    event_details: EventDetailsView


class GuestStatsResponse(SuccessResponse):
    """Response of GET /api/guests/stats."""

    stats: GuestStatsView


class BulkGuestResponse(SuccessResponse):
    """Response of POST /api/guests/generate-guest-list."""

    guests: list[GuestAdminView]
    created: int
    failures: list[ProvisioningFailureView]
