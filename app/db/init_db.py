"""Database initialization utilities."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.db.base import Base
from app.db.session import engine
from app.models import User

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def create_initial_provider(session: AsyncSession) -> User | None:
    """Create a demo provider if no provider exists.

    Args:
        session: Database session

    Returns:
        Created provider or None if one already exists
    """
    result = await session.execute(
        select(User).where(User.is_provider.is_(True)).limit(1)
    )
    if result.scalar_one_or_none():
        logger.info("Provider already exists, skipping creation")
        return None

    provider = User(
        name="Demo Provider",
        email="provider@slotbook.local",
        hashed_password=hash_password("CHANGE_ME_IMMEDIATELY"),
        is_provider=True,
    )
    session.add(provider)
    await session.commit()
    await session.refresh(provider)

    logger.warning(
        "Created demo provider with default password. "
        "CHANGE THE PASSWORD IMMEDIATELY!"
    )
    return provider


async def init_db(session: AsyncSession) -> None:
    """Initialize database with required data.

    Args:
        session: Database session
    """
    await create_tables()
    await create_initial_provider(session)
    logger.info("Database initialization complete")
