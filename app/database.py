"""
Database connection and session management for SQLAlchemy 2.0.
Configured for async operations with PostgreSQL (asyncpg) or SQLite (aiosqlite).

The engine is owned by an explicitly constructed ``Database`` object which the
application factory stores on ``app.state``; request handlers receive sessions
through the ``get_db`` dependency.
"""
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import event, text
from contextlib import asynccontextmanager
from fastapi import Request
from typing import AsyncIterator
from urllib.parse import urlparse
import logging
import socket

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()

SQLITE_MEMORY_URL = "sqlite+aiosqlite://"


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return False, "DATABASE_URL is empty"

    if url.startswith("sqlite"):
        return True, f"SQLite database: {url}"

    try:
        parsed = urlparse(url)

        if not url.startswith(("postgresql://", "postgresql+asyncpg://")):
            return False, f"Invalid database URL scheme. Expected postgresql+asyncpg:// or sqlite+aiosqlite://, got: {parsed.scheme}"

        hostname = parsed.hostname
        if not hostname:
            return False, "No hostname found in DATABASE_URL"

        try:
            socket.getaddrinfo(hostname, None)
            dns_status = "DNS resolution successful"
        except socket.gaierror as e:
            dns_status = f"DNS resolution failed: {str(e)}. This may indicate network connectivity issues or incorrect hostname."

        return True, f"URL format valid. Hostname: {hostname}, Port: {parsed.port or 5432}, Database: {parsed.path or '/postgres'}. {dns_status}"

    except Exception as e:
        return False, f"Error parsing DATABASE_URL: {str(e)}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owner of the async engine and session factory.

    Created once per application, connected at startup and disposed at
    shutdown.
    """

    def __init__(self, url: str = "", echo: bool = False):
        self.url = url or SQLITE_MEMORY_URL
        engine_args = {"echo": echo}

        if self.url.startswith("postgresql"):
            engine_args.update({
                "pool_size": 10,
                "max_overflow": 20,
                "pool_pre_ping": True,  # Verify connections before using
                "pool_recycle": 3600,
            })
        elif self.url.startswith("sqlite") and (
            self.url == SQLITE_MEMORY_URL or ":memory:" in self.url
        ):
            # A single shared connection keeps the in-memory database alive
            engine_args.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })

        self.engine = create_async_engine(self.url, **engine_args)

        if self.url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def connect(self) -> None:
        """
        Verify the database is reachable.

        Raises:
            ValueError: If the URL is malformed
            Exception: If the connection test fails
        """
        is_valid, diagnostic = _validate_database_url(self.url)
        if not is_valid:
            logger.error(f"Invalid DATABASE_URL: {diagnostic}")
            raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

        logger.info(f"Database URL validation: {diagnostic}")

        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection initialized successfully")
        except Exception as e:
            logger.error(
                f"Database connection failed ({type(e).__name__}): {str(e)}\n"
                f"Diagnostic: {diagnostic}"
            )
            raise

    async def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        # Models must be imported so their tables are registered on Base
        from app import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency for database sessions.
    Handlers commit explicitly; any error rolls the session back.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.debug(f"Rolled back database session after {type(e).__name__}: {str(e)}")
            raise
