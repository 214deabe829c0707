"""
Async SQLAlchemy engine and session factory.

The engine is owned by a ``Database`` instance created at application
startup and disposed at shutdown; request handlers receive sessions
through the ``get_db_session`` dependency.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config.settings import Settings
from database.models import Base

logger = logging.getLogger(__name__)


def _insecure_ssl_context() -> ssl.SSLContext:
    """Encrypted transport without certificate verification."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _engine_kwargs(settings: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.db_echo}
    if make_url(settings.database_url).get_backend_name() == "sqlite":
        return kwargs

    kwargs.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
        pool_pre_ping=True,
    )
    if settings.database_ssl:
        kwargs["connect_args"] = {"ssl": _insecure_ssl_context()}
    return kwargs


class Database:
    """Engine + session factory pair with an explicit lifecycle."""

    def __init__(self, settings: Settings) -> None:
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url, **_engine_kwargs(settings)
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create missing tables (the users table and its unique index)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency function — use in FastAPI `Depends(get_db_session)`."""
    db: Database = request.app.state.db
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
