"""Async SQLAlchemy engine, declarative base and request-scoped sessions."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends
from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from biolink.core.config import Settings, get_settings

settings = get_settings()

# Constraint names Alembic can diff against
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def build_engine(config: Settings) -> AsyncEngine:
    """Pooled engine for the configured Postgres database.

    The redirect path and the click counter tasks draw from the same pool,
    so size it for both.
    """
    return create_async_engine(
        config.database_url,
        echo=config.debug,
        pool_size=config.database_pool_size,
        max_overflow=config.database_max_overflow,
        pool_recycle=config.database_pool_recycle,
        pool_pre_ping=True,
    )


engine = build_engine(settings)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for profiles, short links and analytics events."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form timestamps are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session per request; commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


AsyncSessionDep = Annotated[AsyncSession, Depends(get_async_session)]


async def close_db() -> None:
    """Dispose of the engine's pooled connections."""
    await engine.dispose()
