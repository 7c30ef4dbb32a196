"""Async database manager for the IO manager (single pooled engine)."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from io_manager.common.config import IOManagerSettings, get_settings
from io_manager.common.logging import get_logger
from io_manager.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import io_manager.auth.models  # noqa: F401
import io_manager.audit.models  # noqa: F401
import io_manager.catalog.models  # noqa: F401

logger = get_logger("database")


class DatabaseManager:
    """Owns the async engine and its bounded connection pool.

    One instance is created per application and handed to every component
    that touches the record store; nothing reaches it through module state.
    """

    def __init__(self, settings: IOManagerSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    async def init(self) -> None:
        url = self._settings.db_url
        options: dict = {"echo": self._settings.db_echo}
        if not url.startswith("sqlite"):
            options.update(
                pool_size=self._settings.db_pool_size,
                pool_timeout=self._settings.db_pool_timeout,
                pool_pre_ping=True,
            )
        self.engine = create_async_engine(url, **options)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )
        logger.info("database engine initialized")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
