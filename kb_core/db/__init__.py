"""
Database module for Knowledge Core

Provides:
- SQLAlchemy models for knowledge entries and chunks
- Session factory for database connections
- Base class for all models
"""

from .models import (
    Base,
    SourceType,
    KnowledgeEntry,
    KnowledgeChunk,
)

from .session import (
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
    init_db,
    reset_engine,
)

__all__ = [
    # Base
    "Base",
    # Models
    "SourceType",
    "KnowledgeEntry",
    "KnowledgeChunk",
    # Session
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "init_db",
    "reset_engine",
]
