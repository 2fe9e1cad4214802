"""RSVP and check-in state machine.

States of a guest:
- PENDING   → DECLINED   (rsvp attending=false)
- PENDING   → CONFIRMED  (rsvp attending=true)
- DECLINED ↔ CONFIRMED   (rsvp resubmitted, overwrite semantics)
- CONFIRMED → ARRIVED    (check-in)

ARRIVED is sticky: check-in is idempotent and a later RSVP may update the
details but cannot turn the answer into a decline.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.config import Settings, settings
from guestlist.core.errors import ForbiddenError, NotFoundError, PreconditionError
from guestlist.core.text_sanitization import sanitize_message
from guestlist.models.guest import Guest
from guestlist.repositories.guest_repository import GuestRepository

logger = logging.getLogger(__name__)

# =============================================================================
# States
# =============================================================================


class RSVPState(Enum):
    """Lifecycle state of a guest, derived from attending and has_checked_in."""

    PENDING = "pending"
    DECLINED = "declined"
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"

    @classmethod
    def of(cls, guest: Guest) -> "RSVPState":
        """Derive the state of a guest.

        Args:
            guest: Guest record.

        Returns:
            The guest's current state.
        """
        if guest.has_checked_in:
            return cls.ARRIVED
        if guest.attending is None:
            return cls.PENDING
        return cls.CONFIRMED if guest.attending else cls.DECLINED


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class RSVPOutcome:
    """Result of an RSVP submission.

    Attributes:
        guest: Updated guest.
        first_response: True if the guest had never answered before.
        location_access: Whether the guest may now see the event details.
    """

    guest: Guest
    first_response: bool
    location_access: bool


@dataclass(frozen=True)
class CheckInOutcome:
    """Result of a check-in.

    Attributes:
        guest: Guest record after the check-in.
        already_checked_in: True if the guest had arrived before this call.
        check_in_time: Time of the (first) check-in.
    """

    guest: Guest
    already_checked_in: bool
    check_in_time: datetime | None


@dataclass(frozen=True)
class EventDetails:
    """Venue and accommodation information for confirmed guests."""

    name: str
    location_name: str
    address: str
    latitude: float | None
    longitude: float | None
    access_info: str
    parking_info: str
    accommodation_check_in: str
    accommodation_check_out: str
    amenities: list[str] = field(default_factory=list)
    additional_info: str = ""

    @classmethod
    def from_settings(cls, config: Settings) -> "EventDetails":
        """Build event details from configuration."""
        return cls(
            name=config.event_name,
            location_name=config.event_location_name,
            address=config.event_address,
            latitude=config.event_latitude,
            longitude=config.event_longitude,
            access_info=config.event_access_info,
            parking_info=config.event_parking_info,
            accommodation_check_in=config.event_accommodation_check_in,
            accommodation_check_out=config.event_accommodation_check_out,
            amenities=list(config.event_amenities),
            additional_info=config.event_additional_info,
        )


# =============================================================================
# Transitions
# =============================================================================


async def submit_rsvp(
    db: AsyncSession,
    *,
    email: str,
    code: str,
    attending: bool,
    guests_count: int,
    needs_accommodation: bool,
    message: str | None,
    now: datetime,
) -> RSVPOutcome:
    """Record or overwrite a guest's RSVP.

    The code is only accepted together with the email it was issued for.
    Every submission replaces the previous answer as a whole. A decline
    forces guests_count to 0 and needs_accommodation to False.

    Args:
        db: Async database session.
        email: Email address the guest typed.
        code: Guest code (lowercase).
        attending: Whether the guest comes.
        guests_count: Number of companions (0-10).
        needs_accommodation: Whether the guest needs a room.
        message: Free-text message, sanitized before storage.
        now: Submission time.

    Returns:
        RSVPOutcome with the updated guest.

    Raises:
        NotFoundError: If no guest matches both email and code.
        PreconditionError: If an arrived guest tries to decline.
    """
    guest = await GuestRepository.get_by_email_and_code(db, email, code)
    if guest is None:
        raise NotFoundError("Guest")

    if RSVPState.of(guest) is RSVPState.ARRIVED and not attending:
        raise PreconditionError(
            code="ALREADY_CHECKED_IN",
            message="Guest has already checked in and cannot decline",
        )

    first_response = guest.attending is None
    updated = await GuestRepository.update(
        db,
        guest.id,
        attending=attending,
        guests_count=guests_count if attending else 0,
        needs_accommodation=needs_accommodation if attending else False,
        message=sanitize_message(message),
        responded_at=now,
    )
    if updated is None:
        raise NotFoundError("Guest")

    logger.info(
        "RSVP %s for guest %s (attending=%s, companions=%d)",
        "recorded" if first_response else "updated",
        updated.id,
        attending,
        updated.guests_count,
    )
    return RSVPOutcome(
        guest=updated,
        first_response=first_response,
        location_access=attending,
    )


async def check_in(db: AsyncSession, code: str, now: datetime) -> CheckInOutcome:
    """Mark a confirmed guest as arrived. Idempotent.

    Args:
        db: Async database session.
        code: Guest code (lowercase).
        now: Arrival time.

    Returns:
        CheckInOutcome. A repeated check-in succeeds with
        already_checked_in=True and the original check-in time.

    Raises:
        NotFoundError: If the code is unknown.
        PreconditionError: If the guest has not confirmed attendance.
    """
    guest = await GuestRepository.get_by_code(db, code)
    if guest is None:
        raise NotFoundError("Guest")

    if not guest.has_checked_in:
        if guest.attending is not True:
            raise _not_confirmed()
        flipped = await GuestRepository.mark_checked_in(db, guest.id, now)
        await db.refresh(guest)
        if flipped:
            logger.info("Guest %s checked in", guest.id)
            return CheckInOutcome(
                guest=guest,
                already_checked_in=False,
                check_in_time=guest.check_in_time,
            )
        # Lost a race: either another scan checked the guest in first, or
        # the RSVP changed in between.
        if not guest.has_checked_in:
            raise _not_confirmed()

    return CheckInOutcome(
        guest=guest,
        already_checked_in=True,
        check_in_time=guest.check_in_time,
    )


def _not_confirmed() -> PreconditionError:
    return PreconditionError(
        code="ATTENDANCE_NOT_CONFIRMED",
        message="Guest has not confirmed attendance",
    )


async def get_event_details(
    db: AsyncSession,
    code: str,
    config: Settings = settings,
) -> EventDetails:
    """Return venue details to a guest who confirmed.

    Args:
        db: Async database session.
        code: Guest code (lowercase).
        config: Settings holding the event details.

    Returns:
        EventDetails from configuration.

    Raises:
        NotFoundError: If the code is unknown.
        ForbiddenError: If the guest has not confirmed attendance.
    """
    guest = await GuestRepository.get_by_code(db, code)
    if guest is None:
        raise NotFoundError("Guest")
    if guest.attending is not True:
        raise ForbiddenError(
            message="Event details are only available to confirmed guests",
            code="ATTENDANCE_NOT_CONFIRMED",
        )
    return EventDetails.from_settings(config)
