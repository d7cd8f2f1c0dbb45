"""
Database initialization and connection management.

This module provides functions for:
1. Creating the async engine from a database URL
2. Creating the exam engine schema
3. Disposing the engine on shutdown
"""

from typing import Any, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine

from backend.common.logger import app_logger
from backend.database.base import Base

logger = app_logger.getChild("database.init_db")

# Global engine instance
_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine_kwargs(database_url: str, echo: bool, pool_size: int, max_overflow: int) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.

    SQLite drivers use their own pooling and reject pool sizing options.
    """
    kwargs: Dict[str, Any] = {"echo": echo}
    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    return kwargs


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> AsyncEngine:
    """
    Initialize the async database engine and verify connectivity.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size

    Returns:
        AsyncEngine instance
    """
    global _engine

    logger.info(f"Initializing database with URL: {database_url[:10]}...")
    _engine = create_async_engine(
        database_url,
        **get_engine_kwargs(database_url, echo, pool_size, max_overflow)
    )
    if database_url.startswith("sqlite"):
        # Room deletion cascades to participants and answers
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with _engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    logger.info("Database engine initialized successfully")
    return _engine


async def create_schema(engine: Optional[AsyncEngine] = None) -> None:
    """Create every exam engine table that does not exist yet."""
    # Register the table definitions on the shared metadata
    from backend.assessments.exam import database_models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine

    if _engine:
        await _engine.dispose()
        _engine = None
        logger.info("Database engine closed successfully")
