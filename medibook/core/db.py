from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from medibook.core.config import settings

# libpq-style options asyncpg rejects; SSL goes through connect_args instead
_LIBPQ_ONLY_PARAMS = ("sslmode", "channel_binding")


def to_async_url(url: str) -> str:
    """Point postgres URLs at asyncpg; other async URLs pass through untouched."""
    parts = urlparse(url)
    if parts.scheme not in ("postgres", "postgresql"):
        return url
    params = {k: v for k, v in parse_qs(parts.query, keep_blank_values=True).items() if k not in _LIBPQ_ONLY_PARAMS}
    return urlunparse(parts._replace(scheme="postgresql+asyncpg", query=urlencode(params, doseq=True)))


def engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.env == "development", "pool_pre_ping": True}
    if url.startswith("postgresql+asyncpg"):
        options.update(pool_size=5, max_overflow=10, connect_args={"ssl": settings.database_ssl})
    return options


async_database_url = to_async_url(settings.database_url)
engine = create_async_engine(async_database_url, **engine_options(async_database_url))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; services commit their own writes, this commits whatever is left."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables directly. Alembic migrations are the production path."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
