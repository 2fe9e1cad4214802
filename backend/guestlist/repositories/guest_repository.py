"""Repository for Guest CRUD, queries and statistics.

Every method takes an AsyncSession so the caller controls transaction
boundaries. Mutations touch one row; there are no cross-guest transactions.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import Select, and_, case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.errors import ConflictError
from guestlist.core.filtering import GuestFilters, escape_like
from guestlist.models.guest import Guest

# Fields that may be updated via GuestRepository.update().
# id, email and unique_code are immutable after creation. Check-in fields
# only change through mark_checked_in() so the flag stays monotonic.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "personal_welcome_message",
        "attending",
        "guests_count",
        "needs_accommodation",
        "message",
        "responded_at",
        "qr_code_url",
    }
)

DEFAULT_WELCOME_MESSAGE = "Welcome {name}! We are delighted to have you with us."

_DUPLICATE_EMAIL_MESSAGE = "A guest with this email already exists"


@dataclass(frozen=True)
class GuestStats:
    """Aggregate statistics over the full guest set.

    Rates are whole percentages; a zero denominator yields 0.

    Attributes:
        total_guests: Number of guest records.
        responded_guests: Guests with an RSVP answer (attending is not None).
        attending_guests: Guests who confirmed.
        declined_guests: Guests who declined.
        pending_guests: Guests without an answer.
        checked_in_guests: Guests who arrived.
        total_attendees: Sum of 1 + guests_count over confirmed guests.
        accommodation_needed: Confirmed guests needing accommodation.
        response_rate: responded / total.
        confirmation_rate: attending / responded.
        check_in_rate: checked in / attending.
    """

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

    @classmethod
    def from_counts(
        cls,
        *,
        total: int,
        attending: int,
        declined: int,
        checked_in: int,
        companions: int,
        accommodation: int,
    ) -> "GuestStats":
        """Build stats and derived rates from raw counts.

        Args:
            total: Number of guests.
            attending: Confirmed guests.
            declined: Declined guests.
            checked_in: Arrived guests.
            companions: Sum of guests_count over confirmed guests.
            accommodation: Confirmed guests needing accommodation.

        Returns:
            GuestStats with percentages rounded to whole numbers.
        """
        responded = attending + declined
        return cls(
            total_guests=total,
            responded_guests=responded,
            attending_guests=attending,
            declined_guests=declined,
            pending_guests=total - responded,
            checked_in_guests=checked_in,
            total_attendees=attending + companions,
            accommodation_needed=accommodation,
            response_rate=percentage(responded, total),
            confirmation_rate=percentage(attending, responded),
            check_in_rate=percentage(checked_in, attending),
        )


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage, 0 when the denominator is 0.

    Rounds half up (2/3 -> 67, 1/8 -> 13).
    """
    if whole <= 0:
        return 0
    return int(part * 100 / whole + 0.5)


def _apply_filters(stmt: Select[Any], filters: GuestFilters) -> Select[Any]:
    """Add WHERE clauses for the given filters."""
    if filters.attending == "yes":
        stmt = stmt.where(Guest.attending.is_(True))
    elif filters.attending == "no":
        stmt = stmt.where(Guest.attending.is_(False))
    elif filters.attending == "pending":
        stmt = stmt.where(Guest.attending.is_(None))

    if filters.checked_in is not None:
        stmt = stmt.where(Guest.has_checked_in.is_(filters.checked_in))

    if filters.needs_accommodation is not None:
        stmt = stmt.where(Guest.needs_accommodation.is_(filters.needs_accommodation))

    if filters.search:
        pattern = f"%{escape_like(filters.search.lower())}%"
        stmt = stmt.where(
            or_(
                func.lower(Guest.name).like(pattern, escape="\\"),
                Guest.email.like(pattern, escape="\\"),
            )
        )

    return stmt


class GuestRepository:
    """Stateless repository for Guest table operations.

    All methods are static - no instance state.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, guest_id: uuid.UUID) -> Guest | None:
        """Fetch a guest by primary key.

        Returns:
            Guest if found, None otherwise.
        """
        return await db.get(Guest, guest_id)

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Guest | None:
        """Fetch a guest by unique code.

        Args:
            db: Async database session.
            code: Lowercase hex code.

        Returns:
            Guest if found, None otherwise.
        """
        stmt = select(Guest).where(Guest.unique_code == code)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Guest | None:
        """Fetch a guest by email address (case-insensitive).

        Returns:
            Guest if found, None otherwise.
        """
        stmt = select(Guest).where(Guest.email == email.strip().lower())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email_and_code(
        db: AsyncSession, email: str, code: str
    ) -> Guest | None:
        """Fetch a guest whose email AND code both match.

        Used by RSVP so that a code is only accepted together with the
        email it was issued for.

        Returns:
            Guest if both match, None otherwise.
        """
        stmt = select(Guest).where(
            Guest.email == email.strip().lower(),
            Guest.unique_code == code,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def code_exists(db: AsyncSession, code: str) -> bool:
        """Check whether a code is already assigned to a guest."""
        stmt = select(func.count()).select_from(Guest).where(Guest.unique_code == code)
        result = await db.execute(stmt)
        return bool(result.scalar_one())

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        unique_code: str,
        personal_welcome_message: str | None = None,
    ) -> Guest:
        """Create a new guest.

        Email is normalized to lowercase before storage. The welcome
        message defaults to DEFAULT_WELCOME_MESSAGE.

        Args:
            db: Async database session.
            name: Display name (already sanitized).
            email: Email address.
            unique_code: Code issued by the code generator.
            personal_welcome_message: Optional organizer greeting.

        Returns:
            Created Guest with database-generated fields populated.

        Raises:
            ConflictError: If a guest with this email already exists.
        """
        normalized_email = email.strip().lower()
        if await GuestRepository.get_by_email(db, normalized_email) is not None:
            raise ConflictError(code="DUPLICATE_EMAIL", message=_DUPLICATE_EMAIL_MESSAGE)

        guest = Guest(
            name=name,
            email=normalized_email,
            unique_code=unique_code,
            personal_welcome_message=(
                personal_welcome_message or DEFAULT_WELCOME_MESSAGE.format(name=name)
            ),
        )
        db.add(guest)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ConflictError(
                code="DUPLICATE_EMAIL", message=_DUPLICATE_EMAIL_MESSAGE
            ) from exc
        await db.refresh(guest)
        return guest

    @staticmethod
    async def update(
        db: AsyncSession,
        guest_id: uuid.UUID,
        **kwargs: Any,
    ) -> Guest | None:
        """Update guest fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            guest_id: UUID of the guest to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated Guest if found, None if the guest does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        guest = await db.get(Guest, guest_id)
        if guest is None:
            return None

        for field, value in kwargs.items():
            setattr(guest, field, value)

        await db.flush()
        await db.refresh(guest)
        return guest

    @staticmethod
    async def mark_checked_in(
        db: AsyncSession, guest_id: uuid.UUID, now: datetime
    ) -> bool:
        """Flip has_checked_in to True, at most once.

        A single conditional UPDATE: the row only changes if the guest
        confirmed and has not arrived yet, so two concurrent scans cannot
        both set check_in_time.

        Args:
            db: Async database session.
            guest_id: UUID of the guest.
            now: Arrival timestamp.

        Returns:
            True if this call performed the check-in, False otherwise.
        """
        stmt = (
            update(Guest)
            .where(
                Guest.id == guest_id,
                Guest.attending.is_(True),
                Guest.has_checked_in.is_(False),
            )
            .values(has_checked_in=True, check_in_time=now)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete(db: AsyncSession, guest_id: uuid.UUID) -> bool:
        """Delete a guest.

        Returns:
            True if a row was deleted, False if the guest did not exist.
        """
        guest = await db.get(Guest, guest_id)
        if guest is None:
            return False
        await db.delete(guest)
        await db.flush()
        return True

    @staticmethod
    async def list_page(
        db: AsyncSession,
        filters: GuestFilters,
        *,
        offset: int,
        limit: int,
    ) -> tuple[list[Guest], int]:
        """List guests matching filters, newest first, with the total count.

        Args:
            db: Async database session.
            filters: Guest list filters.
            offset: Number of matching rows to skip.
            limit: Maximum number of rows to return.

        Returns:
            Tuple of (guests on this page, total matching guests).
        """
        count_stmt = _apply_filters(select(func.count()).select_from(Guest), filters)
        total = (await db.execute(count_stmt)).scalar_one()

        stmt = (
            _apply_filters(select(Guest), filters)
            .order_by(Guest.created_at.desc(), Guest.name)
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def list_with_qr(db: AsyncSession) -> list[Guest]:
        """List guests that have a generated QR code, ordered by name."""
        stmt = (
            select(Guest)
            .where(Guest.qr_code_url.is_not(None))
            .order_by(Guest.name, Guest.email)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def stats(db: AsyncSession) -> GuestStats:
        """Compute aggregate statistics over all guests in one query.

        Returns:
            GuestStats for the full guest set.
        """
        confirmed = Guest.attending.is_(True)
        stmt = select(
            func.count(Guest.id),
            func.coalesce(func.sum(case((confirmed, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Guest.attending.is_(False), 1), else_=0)), 0),
            func.coalesce(func.sum(case((Guest.has_checked_in.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((confirmed, Guest.guests_count), else_=0)), 0),
            func.coalesce(
                func.sum(
                    case(
                        (and_(confirmed, Guest.needs_accommodation.is_(True)), 1),
                        else_=0,
                    )
                ),
                0,
            ),
        )
        row = (await db.execute(stmt)).one()
        total, attending, declined, checked_in, companions, accommodation = (
            int(value) for value in row
        )
        return GuestStats.from_counts(
            total=total,
            attending=attending,
            declined=declined,
            checked_in=checked_in,
            companions=companions,
            accommodation=accommodation,
        )
