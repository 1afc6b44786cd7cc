"""Async engine, session factory and declarative base.

Sessions handed out here never open a transaction themselves; every usecase
wraps its statements in ``BaseUsecase.transaction()``, which bounds them by
``settings.store_timeout_seconds``.
"""
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from reviewgate.common.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> AsyncEngine:
    """Create the engine; server databases get a bounded pool checkout."""
    options = {}
    if not database_url.startswith("sqlite"):
        options = {"pool_timeout": settings.store_timeout_seconds, "pool_pre_ping": True}
    return create_async_engine(database_url, echo=settings.debug, **options)


engine = build_engine(settings.database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    Closing the session rolls back anything a failed request left open.
    """
    async with async_session_maker() as session:
        yield session


async def init_db():
    """Create missing tables (development only; production runs alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
