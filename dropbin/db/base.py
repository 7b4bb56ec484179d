import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from dropbin.core.config import settings

logger = logging.getLogger(__name__)

# Process-wide engine and session factory, created once at import and
# disposed in the app lifespan shutdown.
engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"timeout": settings.DB_TIMEOUT_SECONDS},
)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create tables if they do not exist yet."""
    # models must be imported so their tables are registered on Base.metadata
    from dropbin.models import text  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def dispose_db():
    await engine.dispose()
    logger.info("Database engine disposed")
