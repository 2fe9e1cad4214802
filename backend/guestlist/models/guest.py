"""Guest model - the central entity.

A guest is created by the admin, receives a unique code (bearer secret for
the guest tier) and a QR invitation, answers the RSVP and checks in on site.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from guestlist.models.base import Base, TimestampMixin

# Upper bound of companions a guest may bring
MAX_GUESTS_COUNT = 10


class Guest(Base, TimestampMixin):
    """Invited guest.

    Attributes:
        id: UUID primary key, immutable.
        name: Display name.
        email: Unique email address, stored lowercase.
        unique_code: Lowercase hex bearer code (12-32 chars). Never rotated.
        attending: Tri-state RSVP answer. None until the guest responds.
        guests_count: Companions (0-10). Meaningful only when attending.
        needs_accommodation: Meaningful only when attending.
        message: Sanitized free-text message from the RSVP form.
        personal_welcome_message: Greeting shown after check-in.
        has_checked_in: Monotonic arrival flag.
        check_in_time: Set once, when has_checked_in flips to True.
        qr_code_url: Public path of the QR image. NULL before generation.
        responded_at: Time of the latest RSVP submission.
    """

    __tablename__ = "guests"
    __table_args__ = (
        CheckConstraint(
            f"guests_count >= 0 AND guests_count <= {MAX_GUESTS_COUNT}",
            name="ck_guests_guests_count_range",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(254),
        unique=True,
        nullable=False,
    )
    unique_code: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
    )
    attending: Mapped[bool | None] = mapped_column(
        Boolean(),
        nullable=True,
        default=None,
    )
    guests_count: Mapped[int] = mapped_column(
        Integer(),
        nullable=False,
        default=0,
    )
    needs_accommodation: Mapped[bool] = mapped_column(
        Boolean(),
        nullable=False,
        default=False,
    )
    message: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    personal_welcome_message: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
    )
    has_checked_in: Mapped[bool] = mapped_column(
        Boolean(),
        nullable=False,
        default=False,
    )
    check_in_time: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    qr_code_url: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    @property
    def rsvp_status(self) -> str:
        """RSVP state as a string: "pending", "declined" or "confirmed"."""
        if self.attending is None:
            return "pending"
        return "confirmed" if self.attending else "declined"
