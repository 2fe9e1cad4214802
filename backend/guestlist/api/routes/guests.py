"""Guest endpoints.

Guest tier (code in the path or body, rate limited per client IP):
    GET  /api/guests/verify/{code}
    POST /api/guests/rsvp
    POST /api/guests/check-in/{code}
    POST /api/guests/check-in          (scanner payload: invitation URL or code)
    GET  /api/guests/event-details/{code}

Admin tier (Bearer access token):
    GET    /api/guests/list
    GET    /api/guests/stats
    POST   /api/guests
    POST   /api/guests/generate-guest-list
    GET    /api/guests/download-qr-codes
    PATCH  /api/guests/{guest_id}
    DELETE /api/guests/{guest_id}

Static paths are declared before /{guest_id} so they are never captured
by it.
"""

import uuid
from dataclasses import asdict
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from guestlist.api.deps import CurrentAdmin, DbSession, GuestCode, QRStorageDep
from guestlist.core.config import settings
from guestlist.core.errors import NotFoundError
from guestlist.core.filtering import GuestFilters, guest_filter_params
from guestlist.core.pagination import PaginationParams, pagination_params
from guestlist.core.rate_limiting import counts_toward_global_limit, limiter
from guestlist.core.responses import ListResponse, PaginationMeta, SuccessResponse
from guestlist.repositories.guest_repository import GuestRepository
from guestlist.schemas.guest import (
    BulkGuestResponse,
    CheckInResponse,
    EventDetailsResponse,
    EventDetailsView,
    GuestAdminResponse,
    GuestAdminView,
    GuestBulkRequest,
    GuestCreateRequest,
    GuestPublicResponse,
    GuestPublicView,
    GuestStatsResponse,
    GuestStatsView,
    GuestUpdateRequest,
    GuestWelcomeView,
    ProvisioningFailureView,
    RSVPRequest,
    RSVPResponse,
    ScannedCheckInRequest,
)
from guestlist.services import guest_provisioning, rsvp
from guestlist.services.guest_provisioning import NewGuest
from guestlist.services.qr_archive import ARCHIVE_FILENAME, build_qr_archive

router = APIRouter()


# =============================================================================
# Guest tier
# =============================================================================


@router.get("/verify/{code}")
@limiter.limit(settings.rate_limit_code_verification)
@counts_toward_global_limit
async def verify_code(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    code: GuestCode,
    db: DbSession,
) -> GuestPublicResponse:
    """Return the guest record a code belongs to."""
    guest = await GuestRepository.get_by_code(db, code)
    if guest is None:
        raise NotFoundError("Guest")
    return GuestPublicResponse(guest=GuestPublicView.model_validate(guest))


@router.post("/rsvp")
@limiter.limit(settings.rate_limit_guest_api)
@counts_toward_global_limit
async def submit_rsvp(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    response: Response,
    body: RSVPRequest,
    db: DbSession,
) -> RSVPResponse:
    """Record or overwrite an RSVP.

    Answers 201 for the first response of a guest and 200 for an update.
    """
    outcome = await rsvp.submit_rsvp(
        db,
        email=body.email,
        code=body.code,
        attending=body.attending,
        guests_count=body.guests_count,
        needs_accommodation=body.needs_accommodation,
        message=body.message,
        now=datetime.now(UTC),
    )
    await db.commit()

    if outcome.first_response:
        response.status_code = status.HTTP_201_CREATED
    return RSVPResponse(
        message="RSVP recorded" if outcome.first_response else "RSVP updated",
        location_access=outcome.location_access,
        guest=GuestPublicView.model_validate(outcome.guest),
    )


@router.post("/check-in/{code}")
@limiter.limit(settings.rate_limit_guest_api)
@counts_toward_global_limit
async def check_in(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    code: GuestCode,
    db: DbSession,
) -> CheckInResponse:
    """Mark a confirmed guest as arrived. Repeated scans succeed."""
    return await _check_in(db, code)


@router.post("/check-in")
@limiter.limit(settings.rate_limit_guest_api)
@counts_toward_global_limit
async def check_in_scanned(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ScannedCheckInRequest,
    db: DbSession,
) -> CheckInResponse:
    """Check in from a door scanner reading (invitation URL or bare code)."""
    return await _check_in(db, body.scanned)


async def _check_in(db: AsyncSession, code: str) -> CheckInResponse:
    outcome = await rsvp.check_in(db, code, datetime.now(UTC))
    await db.commit()

    return CheckInResponse(
        message="Guest already checked in" if outcome.already_checked_in else "Welcome!",
        already_checked_in=outcome.already_checked_in,
        check_in_time=outcome.check_in_time,
        guest=GuestWelcomeView.model_validate(outcome.guest),
    )


@router.get("/event-details/{code}")
@limiter.limit(settings.rate_limit_guest_api)
@counts_toward_global_limit
async def event_details(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    code: GuestCode,
    db: DbSession,
) -> EventDetailsResponse:
    """Venue and accommodation details, for guests who confirmed."""
    details = await rsvp.get_event_details(db, code)
    return EventDetailsResponse(event_details=EventDetailsView(**asdict(details)))


# =============================================================================
# Admin tier
# =============================================================================


@router.get("/list")
async def list_guests(
    _admin: CurrentAdmin,
    db: DbSession,
    pagination: PaginationParams = Depends(pagination_params),  # noqa: B008
    filters: GuestFilters = Depends(guest_filter_params),  # noqa: B008
) -> ListResponse[GuestAdminView]:
    """List guests, newest first, with filters and pagination."""
    guests, total = await GuestRepository.list_page(
        db, filters, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[GuestAdminView.model_validate(g) for g in guests],
        pagination=PaginationMeta(
            total=total, page=pagination.page, limit=pagination.limit
        ),
    )


@router.get("/stats")
async def guest_stats(_admin: CurrentAdmin, db: DbSession) -> GuestStatsResponse:
    """Aggregate RSVP and check-in statistics."""
    stats = await GuestRepository.stats(db)
    return GuestStatsResponse(stats=GuestStatsView.model_validate(stats))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_guest(
    body: GuestCreateRequest,
    _admin: CurrentAdmin,
    db: DbSession,
    storage: QRStorageDep,
) -> GuestAdminResponse:
    """Create a guest with a unique code and QR invitation."""
    guest = await guest_provisioning.create_guest(
        db,
        NewGuest(
            name=body.name,
            email=body.email,
            personal_welcome_message=body.personal_welcome_message,
        ),
        storage,
    )
    await db.commit()
    return GuestAdminResponse(
        message="Guest created", guest=GuestAdminView.model_validate(guest)
    )


@router.post("/generate-guest-list", status_code=status.HTTP_201_CREATED)
async def generate_guest_list(
    body: GuestBulkRequest,
    _admin: CurrentAdmin,
    db: DbSession,
    storage: QRStorageDep,
) -> BulkGuestResponse:
    """Create many guests at once; existing emails are reused."""
    result = await guest_provisioning.generate_guest_list(
        db,
        [
            NewGuest(
                name=entry.name,
                email=entry.email,
                personal_welcome_message=entry.personal_welcome_message,
            )
            for entry in body.guests
        ],
        storage,
    )
    await db.commit()
    return BulkGuestResponse(
        message=f"{result.created} guests created",
        guests=[GuestAdminView.model_validate(g) for g in result.guests],
        created=result.created,
        failures=[ProvisioningFailureView(**asdict(f)) for f in result.failures],
    )


@router.get("/download-qr-codes")
async def download_qr_codes(
    _admin: CurrentAdmin,
    db: DbSession,
    storage: QRStorageDep,
) -> Response:
    """Zip archive of every generated QR code."""
    guests = await GuestRepository.list_with_qr(db)
    if not guests:
        raise NotFoundError("QR code")

    archive, included = build_qr_archive(guests, storage)
    if included == 0:
        raise NotFoundError("QR code")

    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{ARCHIVE_FILENAME}"'},
    )


@router.patch("/{guest_id}")
async def update_guest(
    guest_id: uuid.UUID,
    body: GuestUpdateRequest,
    _admin: CurrentAdmin,
    db: DbSession,
) -> GuestAdminResponse:
    """Edit a guest's name or personal welcome message."""
    guest = await guest_provisioning.update_guest(
        db,
        guest_id,
        name=body.name,
        personal_welcome_message=body.personal_welcome_message,
    )
    await db.commit()
    return GuestAdminResponse(
        message="Guest updated", guest=GuestAdminView.model_validate(guest)
    )


@router.delete("/{guest_id}")
async def delete_guest(
    guest_id: uuid.UUID,
    _admin: CurrentAdmin,
    db: DbSession,
    storage: QRStorageDep,
) -> SuccessResponse:
    """Delete a guest and its QR code."""
    await guest_provisioning.delete_guest(db, guest_id, storage)
    await db.commit()
    return SuccessResponse(message="Guest deleted")
