"""
Database Connection Management

Warehouse engine and session handling with SQLAlchemy 2.0.
Every session is a single transaction: committed when the block succeeds,
rolled back as a whole when it raises.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from retail_analytics.config import get_settings

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def init_database(url: Optional[str] = None) -> Engine:
    """
    Initialize the warehouse engine.

    Args:
        url: Database URL, defaults to the configured warehouse

    Returns:
        Engine: The initialized database engine
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = get_settings()

    _engine = create_engine(
        url or settings.database.sync_url,
        echo=settings.database.echo,
        pool_pre_ping=True,  # Verify connections before use
    )

    _session_factory = sessionmaker(
        bind=_engine,
        class_=Session,
        expire_on_commit=False,
        autoflush=False,
    )

    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection established", url=_engine.url.render_as_string(hide_password=True))
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        _engine.dispose()
        _engine = None
        _session_factory = None
        raise

    return _engine


def close_database() -> None:
    """Dispose the engine and its connection pool."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection pool closed")


def get_engine() -> Engine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@contextmanager
def get_db() -> Iterator[Session]:
    """
    Get a transactional database session.

    Commits when the block exits normally; rolls back every statement of
    the block and re-raises on error.

    Example:
        with get_db() as db:
            snapshot = load_snapshot(db)
    """
    if _session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _session_factory()
    try:
        yield session
        session.commit()
        logger.debug("Database session committed successfully")
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        session.rollback()
        raise
    finally:
        session.close()


def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        with get_db() as db:
            db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
