# idp/adapters/outbound/persistence/database.py

"""
Async engine and session factory for the credential store.

The repository commits its own writes; a request session only needs to be
rolled back if an error escapes the endpoint.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from idp.adapters.configuration.config import settings
from idp.adapters.outbound.persistence.models import Base

logger = logging.getLogger(__name__)


def build_engine(url: str) -> AsyncEngine:
    # Never log credentials: only host/port/db after the '@'.
    logger.info(f"Credential store at: {url.split('@')[-1]}")
    return create_async_engine(
        url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


engine = build_engine(str(settings.DATABASE_URL))
AsyncSessionLocal = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def init_models() -> None:
    """Create the users table if it is missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
