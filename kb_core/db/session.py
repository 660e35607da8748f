"""
Database Session Management for Knowledge Core

Provides session factory and database initialization functions.
"""

import logging
from typing import Optional, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from kb_core.config import get_settings
from .models import Base

log = logging.getLogger(__name__)

# Module-level engine cache
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get the database URL from settings."""
    return get_settings().DATABASE_URL


def _create_engine(url: str, echo: bool = False) -> Engine:
    if url.startswith('sqlite') and (url in ('sqlite://', 'sqlite:///:memory:') or 'mode=memory' in url):
        # In-memory SQLite must share one connection or every session sees an empty database
        return create_engine(
            url,
            echo=echo,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Get or create the database engine.

    Args:
        url: Optional database URL. If not provided, uses DATABASE_URL setting.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if url:
        # Create a new engine for a specific URL
        return _create_engine(url)

    if _engine is None:
        db_url = get_database_url()
        _engine = _create_engine(db_url, echo=get_settings().DB_ECHO)
        log.info(f"Created database engine for: {db_url.split('@')[-1]}")

    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """
    Get or create the session factory.

    Args:
        engine: Optional SQLAlchemy engine. If not provided, uses default engine.
    """
    global _session_factory

    if engine:
        return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _session_factory


def get_session(engine: Optional[Engine] = None) -> Session:
    """
    Create a new database session.

    Note:
        The caller is responsible for closing the session.
    """
    factory = get_session_factory(engine)
    return factory()


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Provide a session that is closed when the block exits.

    Usage:
        with session_scope() as session:
            store = KnowledgeStore(session)
            store.get_entry(1)

    Commits any pending work on success and rolls back on error.
    """
    session = get_session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> Engine:
    """
    Initialize the database by creating all tables.

    Returns:
        The SQLAlchemy Engine used for initialization
    """
    if engine is None:
        engine = get_engine()

    Base.metadata.create_all(engine)
    log.info("Database tables created successfully")

    return engine


def reset_engine() -> None:
    """
    Reset the module-level engine and session factory.

    Useful for testing or when database configuration changes.
    """
    global _engine, _session_factory

    if _engine:
        _engine.dispose()

    _engine = None
    _session_factory = None
    log.info("Database engine reset")
