"""Database connection management with SQLAlchemy."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config.settings import Settings
from src.database.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine (connection pool) and the session factory.

    Built once per application and stored on ``app.state``; request handlers
    reach it through ``get_db_session``. ``connect()`` and ``close()`` bound
    its lifetime.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 0,
        pool_timeout: int = 5,
        connect_timeout: int = 2,
        pool_recycle: int = 3600,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.connect_timeout = connect_timeout
        self.pool_recycle = pool_recycle
        self.echo = echo

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "Database":
        return cls(
            app_settings.database_url,
            pool_size=app_settings.database_pool_size,
            max_overflow=app_settings.database_max_overflow,
            pool_timeout=app_settings.database_pool_timeout,
            connect_timeout=app_settings.database_connect_timeout,
            pool_recycle=app_settings.database_pool_recycle,
            echo=app_settings.database_echo,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._session_factory

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _engine_options(self) -> dict:
        options: dict = {
            "echo": self.echo,
            "connect_args": {"timeout": self.connect_timeout},
        }
        if self.url.startswith("sqlite"):
            if ":memory:" in self.url:
                # Every session must see the same in-memory database
                options["poolclass"] = StaticPool
            return options

        options.update(
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
            pool_recycle=self.pool_recycle,
            pool_pre_ping=True,
        )
        return options

    async def connect(self) -> None:
        """Create the engine and session factory, then verify connectivity."""
        if self._engine is not None:
            return

        logger.info(f"Connecting to database at {self.url.split('@')[-1]}")
        engine = create_async_engine(self.url, **self._engine_options())

        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            await engine.dispose()
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("Database connection successful")

    async def create_all(self) -> None:
        """Create all tables known to the ORM metadata."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the connection pool."""
        if self._engine is not None:
            logger.info("Closing database connection")
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session that commits on success and rolls back on error.

        Usage:
            async with database.session() as session:
                result = await session.execute(select(User))
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
