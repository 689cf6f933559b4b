"""
Database session management for Dugout.

Provides the SQLAlchemy engine and session factory. Nothing here reads the
environment: the engine is built from a Settings instance handed in by the
caller (normally the CLI).

Usage:
    from dugout.db import create_db_engine, make_session_factory, session_scope

    engine = create_db_engine(settings)
    factory = make_session_factory(engine)

    with session_scope(factory) as session:
        matches = session.query(Match).all()
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from dugout.config import Settings


def create_db_engine(settings: Settings) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool sized from settings (not applied to SQLite)
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = settings.database_url
    if not url:
        raise ValueError("database_url is not configured")

    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow

    return create_engine(url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``; commits are always explicit."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
