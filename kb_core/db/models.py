"""
SQLAlchemy Models for Knowledge Core

Defines the knowledge entry and knowledge chunk tables.
Metadata uses JSONB on PostgreSQL and plain JSON elsewhere; embeddings are
stored as serialized JSON arrays of floats.
"""

from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.dialects.postgresql import JSONB

from kb_core.utils.timezone import utc_now, datetime_to_iso

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), 'postgresql')


class SourceType(str, Enum):
    """Where a knowledge entry came from"""
    QNA = "qna"
    FILE = "file"
    TEXT = "text"
    WEBSITE = "website"

    @classmethod
    def parse(cls, value: Any) -> Optional["SourceType"]:
        """Return the matching member for a member or its string value, else None."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return None
        return None


class KnowledgeEntry(Base):
    """Top-level knowledge record from which chunks are derived"""
    __tablename__ = 'knowledge_entries'

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    source_type = Column(String(20), nullable=False)  # 'qna', 'file', 'text', 'website'
    content = Column(Text, nullable=False)
    embedding = Column(Text, nullable=True)  # JSON array, unit length
    entry_metadata = Column('metadata', JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    chunks = relationship(
        "KnowledgeChunk",
        back_populates="entry",
        order_by="KnowledgeChunk.chunk_index",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_knowledge_entries_type', 'source_type'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'source_type': self.source_type,
            'content': self.content,
            'embedding': self.embedding,
            'metadata': self.entry_metadata or {},
            'created_at': datetime_to_iso(self.created_at),
            'updated_at': datetime_to_iso(self.updated_at),
        }


class KnowledgeChunk(Base):
    """Sentence-coherent segment of an entry, embedded on its own"""
    __tablename__ = 'knowledge_chunks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, ForeignKey('knowledge_entries.id', ondelete='CASCADE'), nullable=False)
    source_type = Column(String(20), nullable=False)  # copied from parent at ingestion
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(Text, nullable=False)
    chunk_metadata = Column('metadata', JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    entry = relationship("KnowledgeEntry", back_populates="chunks")

    __table_args__ = (
        UniqueConstraint('parent_id', 'chunk_index', name='uq_knowledge_chunks_parent_index'),
        Index('idx_knowledge_chunks_parent', 'parent_id'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'parent_id': self.parent_id,
            'source_type': self.source_type,
            'chunk_index': self.chunk_index,
            'content': self.content,
            'embedding': self.embedding,
            'metadata': self.chunk_metadata or {},
            'created_at': datetime_to_iso(self.created_at),
        }
