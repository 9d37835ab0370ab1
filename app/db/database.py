from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_database_url(raw_database_url: str) -> str:
    """Ensure an async driver is specified"""
    if raw_database_url.startswith("postgresql://"):
        return raw_database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if raw_database_url.startswith("sqlite:///"):
        return raw_database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return raw_database_url


database_url = build_database_url(settings.DATABASE_URL)
logger.debug("Using DATABASE_URL: %s", database_url)

# Create async engine
engine = create_async_engine(
    database_url,
    echo=settings.DEBUG,
    future=True
)

# Create async session maker
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncSession:
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
