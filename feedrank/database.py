"""
Async SQLAlchemy engine + session factory.

Production runs against TiDB through the aiomysql driver (TiDB speaks the
MySQL 5.7 wire protocol). Any other SQLAlchemy async URL can be supplied via
FEEDRANK_DATABASE_URL_OVERRIDE; SQLite URLs get no connection pool sizing.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from feedrank.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }


engine = create_async_engine(
    settings.database_url,
    echo=False,
    **_engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create missing tables; existing ones are left untouched."""
    import feedrank.models  # noqa: F401  registers tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised (%s)", engine.url.get_backend_name())


async def dispose_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")


async def get_db():
    """
    FastAPI dependency: one AsyncSession per request.

    Commits when the handler returns, rolls back and re-raises on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
