"""Authentication and account service."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User


class EmailAlreadyRegisteredError(Exception):
    """Raised when an email address is already in use."""

    pass


class InvalidPasswordError(Exception):
    """Raised when the current password does not match."""

    pass


class AuthService:
    """Service for handling authentication and account operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def authenticate(
        self,
        email: str,
        password: str,
    ) -> User | None:
        """Authenticate a user with email and password.

        Args:
            email: User email address
            password: Plain text password

        Returns:
            User if credentials valid, None otherwise
        """
        user = await self.get_user_by_email(email)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    async def create_token(self, user: User) -> str:
        """Create JWT access token for a user.

        Args:
            user: Authenticated User instance

        Returns:
            JWT access token string
        """
        return create_access_token(
            user_id=user.id,
            additional_claims={
                "email": user.email,
                "provider": user.is_provider,
            },
        )

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Get user by ID.

        Args:
            user_id: ID of the user

        Returns:
            User or None
        """
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email address.

        Args:
            email: User email address

        Returns:
            User or None
        """
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def register_user(
        self,
        name: str,
        email: str,
        password: str,
        is_provider: bool = False,
    ) -> User:
        """Create a new user account.

        Raises:
            EmailAlreadyRegisteredError: If the email is taken
        """
        if await self.get_user_by_email(email):
            raise EmailAlreadyRegisteredError(email)

        user = User(
            name=name,
            email=email.lower(),
            hashed_password=hash_password(password),
            is_provider=is_provider,
        )
        self.session.add(user)

        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise EmailAlreadyRegisteredError(email)

        await self.session.refresh(user)
        return user

    async def update_user(
        self,
        user: User,
        name: str | None = None,
        email: str | None = None,
        old_password: str | None = None,
        password: str | None = None,
    ) -> User:
        """Update the user's own account.

        Changing the password requires the current one.

        Raises:
            EmailAlreadyRegisteredError: If the new email is taken
            InvalidPasswordError: If ``old_password`` is wrong or missing
        """
        if email and email.lower() != user.email:
            if await self.get_user_by_email(email):
                raise EmailAlreadyRegisteredError(email)
            user.email = email.lower()

        if password:
            if not old_password or not verify_password(old_password, user.hashed_password):
                raise InvalidPasswordError("Password does not match")
            user.hashed_password = hash_password(password)

        if name:
            user.name = name

        await self.session.commit()
        await self.session.refresh(user)
        return user
