"""Database infrastructure for API layer."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sensorwatch.api.domain.models import Base


class Database:
    """Database connection manager."""

    def __init__(
        self,
        async_database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        """
        Initialize database connection.

        Args:
            async_database_url: Asynchronous database URL (e.g. postgresql+asyncpg://...)
            pool_size: Base connection pool size (ignored for SQLite)
            max_overflow: Additional connections under load (ignored for SQLite)
            echo: Log emitted SQL
        """
        self.async_database_url = async_database_url

        engine_options = {"echo": echo}
        if not async_database_url.startswith("sqlite"):
            engine_options.update(
                pool_pre_ping=True,  # Verify connections before using
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,  # Recycle connections after 1 hour
                pool_timeout=30,  # Timeout waiting for connection (seconds)
            )

        self.async_engine = create_async_engine(async_database_url, **engine_options)
        self.async_session_factory = async_sessionmaker(
            bind=self.async_engine,
            class_=AsyncSession,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info(f"Database engine configured for {self.async_engine.url.render_as_string(hide_password=True)}")

    async def create_all(self):
        """Create all tables (for development only)."""
        logger.info("Creating database tables...")
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✓ Database tables created")

    async def drop_all(self):
        """Drop all tables (for development only)."""
        logger.warning("Dropping all database tables...")
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("✓ Database tables dropped")

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an asynchronous database session (committed on success, rolled back on error)."""
        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close database connections."""
        await self.async_engine.dispose()
        logger.info("✓ Database connections closed")
