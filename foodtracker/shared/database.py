"""
Database configuration and utilities for the Food Tracker backend
Includes async engine setup, session management, and lifecycle helpers
"""

import time
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy import text
from sqlalchemy.engine import make_url

from .models import Base


# ============================================================================
# DATABASE URL CONFIGURATION
# ============================================================================

def normalize_database_url(database_url: Optional[str]) -> Optional[str]:
    """
    Convert a database URL to its async driver form

    Supports:
    - postgres:// and postgresql:// (converted to postgresql+asyncpg://)
    - sqlite:/// (converted to sqlite+aiosqlite:///)
    - URLs that already name an async driver (returned unchanged)
    """
    if not database_url:
        return None

    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


# ============================================================================
# ENGINE CONFIGURATION
# ============================================================================

def create_database_engine(
    url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
    pool_pre_ping: bool = True,
    pool_recycle: int = 3600,
) -> AsyncEngine:
    """
    Create async database engine

    Args:
        url: Database URL (any form accepted by normalize_database_url)
        pool_size: Number of permanent connections (PostgreSQL only)
        max_overflow: Additional connections on demand (PostgreSQL only)
        echo: Log all SQL queries
        pool_pre_ping: Test connections before use
        pool_recycle: Recycle connections after N seconds

    Returns:
        AsyncEngine
    """
    url = normalize_database_url(url)

    if make_url(url).get_backend_name() == "sqlite":
        # SQLite has no server-side pool to tune
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_recycle=pool_recycle,
        echo=echo,
        connect_args={
            "server_settings": {
                "application_name": "foodtracker_api",
            },
            "command_timeout": 60,
            "timeout": 10,
        },
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# ============================================================================
# SESSION MANAGEMENT
# ============================================================================

@asynccontextmanager
async def get_session_context(
    session_factory: async_sessionmaker,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for a transactional database session

    Usage:
        async with get_session_context(factory) as session:
            result = await session.execute(select(User))
            users = result.scalars().all()
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ============================================================================
# DATABASE LIFECYCLE
# ============================================================================

async def init_database(engine: AsyncEngine) -> None:
    """
    Create all tables that do not exist yet

    Production deployments run migrations; this is for development and tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_database(engine: AsyncEngine) -> None:
    """
    Drop all tables (for testing only)

    WARNING: This will DELETE ALL DATA!
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_database(engine: AsyncEngine) -> None:
    """Close database connections (call on app shutdown)"""
    await engine.dispose()


# ============================================================================
# HEALTH CHECK
# ============================================================================

async def check_database_health(session_factory: Optional[async_sessionmaker]) -> dict:
    """
    Check database connectivity

    Returns:
        {
            "status": "healthy" | "unhealthy" | "not_configured",
            "response_time_ms": 1.3
        }
    """
    if session_factory is None:
        return {"status": "not_configured"}

    try:
        start_time = time.time()

        async with session_factory() as session:
            await session.execute(text("SELECT 1"))

        response_time_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "response_time_ms": round(response_time_ms, 2),
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # Engine & Session
    "normalize_database_url",
    "create_database_engine",
    "create_session_factory",
    "get_session_context",

    # Lifecycle
    "init_database",
    "drop_database",
    "close_database",

    # Health
    "check_database_health",
]
