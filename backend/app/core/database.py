"""Database connection and session management."""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url_resolved


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for the configured backend; SQLite takes none of them."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,  # Enable connection health checks
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 10,  # Wait max 10 seconds for connection
        "connect_args": {"connect_timeout": 10},
    }


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Usage:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            # Use db session
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}")
            raise


async def init_db():
    """Create tables that don't exist yet."""
    from app.models.database import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized successfully")


async def close_db():
    """Close database connections."""
    await engine.dispose()
    logger.info("Database connections closed")
