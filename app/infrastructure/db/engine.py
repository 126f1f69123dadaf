from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings
from app.infrastructure.db.tables import metadata

# Fallback for dev/test when DATABASE_URL is not set
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def build_engine(settings: Settings) -> AsyncEngine:
    url = settings.database_url or DEFAULT_DATABASE_URL
    if url.startswith("sqlite"):
        return create_async_engine(url)
    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
