"""Scheduling API endpoints: booking, cancellation and schedules."""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import CurrentProvider, CurrentUser, DbSession, Dispatcher
from app.booking.policy import RejectionKind
from app.core.config import settings
from app.schemas.appointment import AppointmentCreate, AppointmentRead
from app.services.scheduling import (
    AppointmentNotFoundError,
    BookingRejectedError,
    CancellationRejectedError,
    NotAProviderError,
    SchedulingService,
)
from app.utils.time import utc_now

router = APIRouter()

# HTTP status for each policy rejection
REJECTION_STATUS = {
    RejectionKind.INVALID_PROVIDER: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    RejectionKind.SLOT_UNAVAILABLE: status.HTTP_400_BAD_REQUEST,
    RejectionKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    RejectionKind.CANCELLATION_WINDOW_EXPIRED: status.HTTP_401_UNAUTHORIZED,
}


def _rejection_to_http(error: BookingRejectedError | CancellationRejectedError) -> HTTPException:
    return HTTPException(
        status_code=REJECTION_STATUS.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail=error.decision.message,
    )


@router.post(
    "/appointments",
    response_model=AppointmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def book_appointment(
    user: CurrentUser,
    session: DbSession,
    request: AppointmentCreate,
) -> AppointmentRead:
    """Book an appointment with a provider."""
    service = SchedulingService(session)
    now = utc_now()

    try:
        appointment = await service.book_appointment(
            requester_id=user.id,
            provider_id=request.provider_id,
            requested_at=request.date,
            now=now,
        )
    except BookingRejectedError as e:
        raise _rejection_to_http(e)

    return AppointmentRead.from_appointment(appointment, now, settings.cancellation_window)


@router.get(
    "/appointments",
    response_model=list[AppointmentRead],
)
async def list_appointments(
    user: CurrentUser,
    session: DbSession,
) -> list[AppointmentRead]:
    """List the caller's non-cancelled appointments, earliest first."""
    service = SchedulingService(session)
    appointments = await service.get_user_appointments(user.id)
    now = utc_now()

    return [
        AppointmentRead.from_appointment(a, now, settings.cancellation_window)
        for a in appointments
    ]


@router.delete(
    "/appointments/{appointment_id}",
    response_model=AppointmentRead,
)
async def cancel_appointment(
    appointment_id: int,
    user: CurrentUser,
    session: DbSession,
    dispatcher: Dispatcher,
) -> AppointmentRead:
    """Cancel one of the caller's appointments.

    The provider is emailed after the response is sent.
    """
    service = SchedulingService(session, dispatcher=dispatcher)
    now = utc_now()

    try:
        appointment = await service.cancel_appointment(
            appointment_id=appointment_id,
            requester_id=user.id,
            now=now,
        )
    except AppointmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found",
        )
    except CancellationRejectedError as e:
        raise _rejection_to_http(e)

    return AppointmentRead.from_appointment(appointment, now, settings.cancellation_window)


@router.get(
    "/schedule",
    response_model=list[AppointmentRead],
)
async def get_schedule(
    provider: CurrentProvider,
    session: DbSession,
    day: date = Query(..., alias="date"),
) -> list[AppointmentRead]:
    """List the calling provider's appointments on one day."""
    service = SchedulingService(session)

    try:
        appointments = await service.get_provider_schedule(provider.id, day)
    except NotAProviderError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is not a provider",
        )

    now = utc_now()
    return [
        AppointmentRead.from_appointment(a, now, settings.cancellation_window)
        for a in appointments
    ]
