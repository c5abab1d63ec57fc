"""SQLAlchemy async session setup for ISMS Workbench.

Provides:
- Base: DeclarativeBase for all ORM models
- build_engine / build_session_factory: called by the application entry point,
  which owns the engine lifecycle (no module-level engine)
- get_async_session: FastAPI dependency with Unit-of-Work commit/rollback
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from isms.config.settings import Environment, Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=(settings.ENVIRONMENT == Environment.DEV),
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session with Unit-of-Work semantics.

    Repositories only call add()/flush()/refresh().
    Commit happens once at the end of a successful request.
    Rollback happens on any exception.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
