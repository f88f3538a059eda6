"""Async SQLAlchemy database engine and session management.

Provides the relational store collaborator with:
- An owned connection pool with an explicit lifecycle (connect/dispose)
- FastAPI dependency injection via get_session()
- One transaction per request (commit on success, rollback on error)
- PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for dev/tests
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import DatabaseConfig

logger = structlog.get_logger(__name__)


class Database:
    """Engine + session factory pair owned by the application lifespan.

    Created at startup, stored on ``app.state.db`` and disposed on
    shutdown::

        db = Database(config.database)
        await db.connect()
        ...
        await db.close()
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine: AsyncEngine = self._create_engine(config)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @staticmethod
    def _create_engine(config: DatabaseConfig) -> AsyncEngine:
        if config.url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across sessions
            return create_async_engine(
                config.url,
                echo=config.echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(
            config.url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            echo=config.echo,
            pool_pre_ping=True,
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    # -- Lifecycle hooks --

    async def connect(self) -> None:
        """Ping the store and optionally create tables from models."""
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if self.config.create_tables:
                from core.models.base import Base
                import verticals.catalog.models.db_models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connection established", dialect=self.dialect)

    async def close(self) -> None:
        """Dispose of the connection pool on shutdown."""
        await self.engine.dispose()
        logger.info("Database connection pool disposed")

    # -- Sessions --

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager variant for non-FastAPI code (scripts, tests, etc.)."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session with automatic commit/rollback.

    Usage in FastAPI routes::

        @router.get("/items")
        async def list_items(session: AsyncSession = Depends(get_session)):
            result = await session.execute(select(Item))
            return result.scalars().all()
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
