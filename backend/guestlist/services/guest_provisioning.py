"""Admin-side guest provisioning: creation, bulk generation, edits, deletion.

Public API:
- create_guest        - new guest with a fresh code and its QR image
- ensure_qr_code      - (re)generate the QR image of an existing guest
- generate_guest_list - bulk create, reusing guests that already exist
- update_guest        - organizer edits (name, welcome message)
- delete_guest        - remove a guest and, best effort, its QR image

Inputs are expected to be validated and sanitized already (request schemas
do that at the boundary).
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.core.config import settings
from guestlist.core.errors import APIError, NotFoundError
from guestlist.models.guest import Guest
from guestlist.repositories.guest_repository import GuestRepository
from guestlist.services.code_generator import (
    generate_unique_code,
    qr_public_id,
    render_invitation_qr,
)
from guestlist.services.qr_storage import QRCodeStorage

logger = logging.getLogger(__name__)

# =============================================================================
# Result Dataclasses
# =============================================================================


@dataclass(frozen=True)
class NewGuest:
    """Guest to create.

    Attributes:
        name: Display name.
        email: Email address.
        personal_welcome_message: Optional organizer greeting.
    """

    name: str
    email: str
    personal_welcome_message: str | None = None


@dataclass(frozen=True)
class ProvisioningFailure:
    """A guest of a bulk request that could not be fully provisioned.

    Attributes:
        email: Email of the entry.
        code: Machine-readable error code.
        message: Client-safe explanation.
    """

    email: str
    code: str
    message: str


@dataclass
class BulkProvisioningResult:
    """Outcome of generate_guest_list.

    Attributes:
        guests: Guests created or reused, in request order.
        created: Number of guests newly created.
        failures: Entries that failed, with the reason.
    """

    guests: list[Guest] = field(default_factory=list)
    created: int = 0
    failures: list[ProvisioningFailure] = field(default_factory=list)


# =============================================================================
# Public API
# =============================================================================


async def ensure_qr_code(
    db: AsyncSession,
    guest: Guest,
    storage: QRCodeStorage,
    base_url: str | None = None,
) -> Guest:
    """Render and store the QR image of a guest, then record its URL.

    Args:
        db: Async database session.
        guest: Guest whose code is encoded.
        storage: QR image storage.
        base_url: Invitation front-end URL. Defaults to settings.

    Returns:
        Guest with qr_code_url set.

    Raises:
        InfrastructureError: If the image cannot be stored.
    """
    png = render_invitation_qr(guest.unique_code, base_url or settings.invitation_base_url)
    url = storage.save(qr_public_id(guest.unique_code), png)
    updated = await GuestRepository.update(db, guest.id, qr_code_url=url)
    if updated is None:
        raise NotFoundError("Guest", str(guest.id))
    return updated


async def create_guest(
    db: AsyncSession,
    new_guest: NewGuest,
    storage: QRCodeStorage,
    *,
    base_url: str | None = None,
    max_attempts: int | None = None,
) -> Guest:
    """Create a guest with a unique code and a QR invitation.

    Args:
        db: Async database session.
        new_guest: Name, email and optional welcome message.
        storage: QR image storage.
        base_url: Invitation front-end URL. Defaults to settings.
        max_attempts: Code generation attempts. Defaults to settings.

    Returns:
        The created guest, QR URL included.

    Raises:
        ConflictError: If the email is taken or no unique code could be drawn.
        InfrastructureError: If the QR image cannot be stored.
    """
    code = await generate_unique_code(
        db, max_attempts or settings.code_generation_max_attempts
    )
    guest = await GuestRepository.create(
        db,
        name=new_guest.name,
        email=new_guest.email,
        unique_code=code,
        personal_welcome_message=new_guest.personal_welcome_message,
    )
    logger.info("Guest %s created", guest.id)
    return await ensure_qr_code(db, guest, storage, base_url)


async def generate_guest_list(
    db: AsyncSession,
    entries: Iterable[NewGuest],
    storage: QRCodeStorage,
    *,
    base_url: str | None = None,
    max_attempts: int | None = None,
) -> BulkProvisioningResult:
    """Create many guests at once.

    An entry whose email already exists reuses that guest (its QR image is
    generated if it has none yet). A failing entry is reported and the
    others proceed.

    Args:
        db: Async database session.
        entries: Guests to provision, in order.
        storage: QR image storage.
        base_url: Invitation front-end URL. Defaults to settings.
        max_attempts: Code generation attempts. Defaults to settings.

    Returns:
        BulkProvisioningResult.
    """
    result = BulkProvisioningResult()
    for entry in entries:
        try:
            guest = await GuestRepository.get_by_email(db, entry.email)
            if guest is None:
                code = await generate_unique_code(
                    db, max_attempts or settings.code_generation_max_attempts
                )
                guest = await GuestRepository.create(
                    db,
                    name=entry.name,
                    email=entry.email,
                    unique_code=code,
                    personal_welcome_message=entry.personal_welcome_message,
                )
                result.created += 1
                logger.info("Guest %s created", guest.id)
            if guest.qr_code_url is None or storage.load(
                qr_public_id(guest.unique_code)
            ) is None:
                guest = await ensure_qr_code(db, guest, storage, base_url)
        except APIError as exc:
            logger.warning(
                "Bulk provisioning failed for an entry: %s (%s)", exc.message, exc.code
            )
            result.failures.append(
                ProvisioningFailure(email=entry.email, code=exc.code, message=exc.message)
            )
            continue
        result.guests.append(guest)

    logger.info(
        "Bulk provisioning done: %d created, %d reused, %d failed",
        result.created,
        len(result.guests) - result.created,
        len(result.failures),
    )
    return result


async def update_guest(
    db: AsyncSession,
    guest_id: uuid.UUID,
    *,
    name: str | None = None,
    personal_welcome_message: str | None = None,
) -> Guest:
    """Apply organizer edits to a guest.

    Fields left as None are unchanged.

    Returns:
        Updated guest.

    Raises:
        NotFoundError: If the guest does not exist.
    """
    changes: dict[str, str] = {}
    if name is not None:
        changes["name"] = name
    if personal_welcome_message is not None:
        changes["personal_welcome_message"] = personal_welcome_message

    guest = (
        await GuestRepository.update(db, guest_id, **changes)
        if changes
        else await GuestRepository.get_by_id(db, guest_id)
    )
    if guest is None:
        raise NotFoundError("Guest", str(guest_id))
    return guest


async def delete_guest(
    db: AsyncSession,
    guest_id: uuid.UUID,
    storage: QRCodeStorage,
) -> None:
    """Delete a guest and its QR image.

    Removing the image is best effort; the database row is authoritative.

    Raises:
        NotFoundError: If the guest does not exist.
    """
    guest = await GuestRepository.get_by_id(db, guest_id)
    if guest is None:
        raise NotFoundError("Guest", str(guest_id))

    public_id = qr_public_id(guest.unique_code)
    await GuestRepository.delete(db, guest_id)
    storage.delete(public_id)
    logger.info("Guest %s deleted", guest_id)
