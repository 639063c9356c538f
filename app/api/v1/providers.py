"""Provider listing endpoint."""

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession
from app.schemas.user import ProviderRead
from app.services.scheduling import SchedulingService

router = APIRouter()


@router.get(
    "",
    response_model=list[ProviderRead],
)
async def list_providers(
    user: CurrentUser,
    session: DbSession,
) -> list[ProviderRead]:
    """List users who accept bookings."""
    service = SchedulingService(session)
    providers = await service.list_providers()

    return [ProviderRead.model_validate(p) for p in providers]
