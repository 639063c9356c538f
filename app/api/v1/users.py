"""User account endpoints."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, DbSession
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.auth import AuthService, EmailAlreadyRegisteredError, InvalidPasswordError

router = APIRouter()


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
async def create_user(
    request: UserCreate,
    session: DbSession,
) -> UserRead:
    """Register a new user, optionally as a provider."""
    auth_service = AuthService(session)

    try:
        user = await auth_service.register_user(
            name=request.name,
            email=request.email,
            password=request.password,
            is_provider=request.provider,
        )
    except EmailAlreadyRegisteredError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists.",
        )

    return UserRead.model_validate(user)


@router.put(
    "",
    response_model=UserRead,
    summary="Update own account",
)
async def update_user(
    request: UserUpdate,
    user: CurrentUser,
    session: DbSession,
) -> UserRead:
    """Update the caller's name, email or password."""
    auth_service = AuthService(session)

    try:
        user = await auth_service.update_user(
            user,
            name=request.name,
            email=request.email,
            old_password=request.old_password,
            password=request.password,
        )
    except EmailAlreadyRegisteredError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists.",
        )
    except InvalidPasswordError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Password does not match",
        )

    return UserRead.model_validate(user)
