"""Engine, session and schema helpers shared by the repositories."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel


def to_asyncpg_dsn(dsn: str) -> str:
    """Ensure a PostgreSQL DSN uses the asyncpg driver."""

    if dsn.startswith("postgresql+asyncpg://"):
        return dsn
    if dsn.startswith("postgresql://"):
        return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
    if dsn.startswith("postgres://"):
        return "postgresql+asyncpg://" + dsn[len("postgres://") :]
    return dsn


def create_engine(dsn: str, *, echo: bool = False) -> AsyncEngine:
    return create_async_engine(to_asyncpg_dsn(dsn), echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create every table registered on the SQLModel metadata."""

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


def ensure_datetime(value: datetime | None) -> datetime:
    """Return ``value`` as an aware UTC datetime; SQLite drops the tzinfo."""

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
