"""
Knowledge Store

CRUD over knowledge entries and their chunks. Every SQLAlchemy error is
rolled back and surfaced as StorageError; callers never see driver errors.
"""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kb_core.db.models import KnowledgeChunk, KnowledgeEntry, SourceType
from kb_core.exceptions import (
    InvalidInputError,
    NoOpError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .schemas import ChunkCreate, EntryCreate, EntryUpdate, validate_model

log = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 65535

# EntryUpdate field -> KnowledgeEntry attribute
_UPDATE_COLUMNS = {
    'title': 'title',
    'content': 'content',
    'embedding': 'embedding',
    'metadata': 'entry_metadata',
}


def storage_errors(operation: str) -> Callable:
    """
    Decorator that rolls back and converts SQLAlchemy errors to StorageError.

    Knowledge errors raised inside the method pass through untouched.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                self.session.rollback()
                log.error(f"Database error during {operation}: {e}")
                raise StorageError(f"Database error during {operation}", operation=operation) from e
        return wrapper
    return decorator


def _check_id(value: Any, field: str = 'id') -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"Invalid {field}: {value!r}", field=field)
    return value


class KnowledgeStore:
    """Store for knowledge entries and their derived chunks."""

    def __init__(self, session: Session, max_content_bytes: int = MAX_CONTENT_BYTES):
        self.session = session
        self.max_content_bytes = max_content_bytes

    @classmethod
    def from_settings(cls, session: Session, settings) -> "KnowledgeStore":
        return cls(session, max_content_bytes=settings.MAX_CONTENT_BYTES)

    def _check_content_size(self, content: str) -> None:
        size = len(content.encode('utf-8'))
        if size > self.max_content_bytes:
            log.error(f"Content too long for storage: {size} bytes")
            raise ValidationError(
                f"Content exceeds {self.max_content_bytes} bytes",
                field_errors={'content': [f"{size} bytes exceeds limit of {self.max_content_bytes}"]}
            )

    def _require_entry(self, entry_id: int) -> KnowledgeEntry:
        entry = self.get_entry(entry_id)
        if entry is None:
            log.error(f"Knowledge entry does not exist: {entry_id}")
            raise NotFoundError(
                f"Knowledge entry {entry_id} not found",
                resource_type='knowledge_entry',
                resource_id=entry_id
            )
        return entry

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    @storage_errors('get_entry')
    def get_entry(self, entry_id: int) -> Optional[KnowledgeEntry]:
        """Get entry by id, or None if it does not exist."""
        return self.session.get(KnowledgeEntry, _check_id(entry_id))

    @storage_errors('list_entries')
    def list_entries(self, source_type: Optional[Any] = None) -> List[KnowledgeEntry]:
        query = self.session.query(KnowledgeEntry)
        if source_type is not None:
            query = query.filter(KnowledgeEntry.source_type == self._source_type_value(source_type))
        return query.order_by(KnowledgeEntry.id).all()

    @storage_errors('create_entry')
    def create_entry(
        self,
        title: str,
        source_type: Any,
        content: str,
        embedding: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Create a knowledge entry.

        Raises:
            ValidationError: missing/empty field, unknown source type,
                content over the size ceiling or malformed embedding
            StorageError: the insert failed

        Returns:
            New entry id
        """
        data = validate_model(
            EntryCreate,
            title=title,
            source_type=source_type,
            content=content,
            embedding=embedding,
            metadata=metadata,
        )
        self._check_content_size(data.content)

        entry = KnowledgeEntry(
            title=data.title,
            source_type=data.source_type.value,
            content=data.content,
            embedding=data.embedding,
            entry_metadata=dict(data.metadata),
        )
        self.session.add(entry)
        self.session.commit()

        log.info(f"Created knowledge entry {entry.id} ({data.source_type.value}): {data.title}")
        return entry.id

    @storage_errors('update_entry')
    def update_entry(
        self,
        entry_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        embedding: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Sparse update: only supplied, non-empty fields are written.

        Updating never re-chunks or re-embeds the entry.

        Raises:
            NotFoundError: entry does not exist
            ValidationError: a supplied field is invalid
            NoOpError: nothing to write
            StorageError: the update failed

        Returns:
            Number of affected entries (1)
        """
        entry = self._require_entry(entry_id)

        data = validate_model(
            EntryUpdate,
            title=title,
            content=content,
            embedding=embedding,
            metadata=metadata,
        )
        changes = data.changes()

        if not changes:
            log.warning(f"No valid data provided for update of entry {entry_id}")
            raise NoOpError()

        if 'content' in changes:
            self._check_content_size(changes['content'])

        for field, value in changes.items():
            setattr(entry, _UPDATE_COLUMNS[field], value)
        self.session.commit()

        log.info(f"Updated knowledge entry {entry_id}: {', '.join(sorted(changes))}")
        return 1

    @storage_errors('delete_entry')
    def delete_entry(self, entry_id: int) -> int:
        """
        Delete an entry and then every chunk that belongs to it.

        Chunk cleanup is attempted after the entry is gone; a cleanup failure
        is logged but does not undo or block the entry deletion.

        Raises:
            NotFoundError: entry does not exist
            StorageError: the entry itself could not be deleted

        Returns:
            Number of deleted entries (1)
        """
        self._require_entry(entry_id)

        deleted = self.session.query(KnowledgeEntry).filter(
            KnowledgeEntry.id == entry_id
        ).delete()
        self.session.commit()

        try:
            chunks_deleted = self._delete_chunk_rows(entry_id)
            self.session.commit()
            log.info(f"Deleted {chunks_deleted} related chunks for entry {entry_id}")
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error(f"Chunk cleanup failed for deleted entry {entry_id}: {e}")

        log.info(f"Deleted knowledge entry {entry_id}")
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    @storage_errors('create_chunk')
    def create_chunk(
        self,
        parent_id: int,
        source_type: Any,
        chunk_index: int,
        content: str,
        embedding: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Store one chunk of an existing entry.

        Raises:
            NotFoundError: parent entry does not exist
            ValidationError: invalid chunk fields
            StorageError: the insert failed (including a duplicate chunk_index)

        Returns:
            New chunk id
        """
        self._require_entry(_check_id(parent_id, 'parent_id'))

        data = validate_model(
            ChunkCreate,
            parent_id=parent_id,
            source_type=source_type,
            chunk_index=chunk_index,
            content=content,
            embedding=embedding,
            metadata=metadata,
        )

        chunk = KnowledgeChunk(
            parent_id=data.parent_id,
            source_type=data.source_type.value,
            chunk_index=data.chunk_index,
            content=data.content,
            embedding=data.embedding,
            chunk_metadata=dict(data.metadata),
        )
        self.session.add(chunk)
        self.session.commit()

        log.debug(f"Stored chunk {data.chunk_index} for entry {data.parent_id}")
        return chunk.id

    @storage_errors('list_chunks')
    def list_chunks(self, parent_id: int) -> List[KnowledgeChunk]:
        """Chunks of an entry in chunk_index order."""
        return self.session.query(KnowledgeChunk).filter(
            KnowledgeChunk.parent_id == _check_id(parent_id, 'parent_id')
        ).order_by(KnowledgeChunk.chunk_index).all()

    @storage_errors('count_chunks')
    def count_chunks(self, parent_id: int) -> int:
        return self.session.query(KnowledgeChunk).filter(
            KnowledgeChunk.parent_id == _check_id(parent_id, 'parent_id')
        ).count()

    @storage_errors('delete_chunks')
    def delete_chunks(self, parent_id: int) -> int:
        """Remove every chunk of an entry ahead of re-ingestion."""
        deleted = self._delete_chunk_rows(_check_id(parent_id, 'parent_id'))
        self.session.commit()
        log.info(f"Deleted {deleted} chunks for entry {parent_id}")
        return deleted

    @storage_errors('chunk_rows')
    def chunk_rows(self, source_type: Optional[Any] = None) -> List[Tuple[KnowledgeChunk, str]]:
        """
        (chunk, parent title) pairs for chunks whose parent still exists.

        Orphaned chunks are never returned.
        """
        query = self.session.query(KnowledgeChunk, KnowledgeEntry.title).join(
            KnowledgeEntry, KnowledgeChunk.parent_id == KnowledgeEntry.id
        )
        if source_type is not None:
            query = query.filter(KnowledgeChunk.source_type == self._source_type_value(source_type))

        rows = query.order_by(KnowledgeChunk.parent_id, KnowledgeChunk.chunk_index).all()
        return [(chunk, title) for chunk, title in rows]

    def _delete_chunk_rows(self, parent_id: int) -> int:
        return self.session.query(KnowledgeChunk).filter(
            KnowledgeChunk.parent_id == parent_id
        ).delete()

    @staticmethod
    def _source_type_value(source_type: Any) -> str:
        parsed = SourceType.parse(source_type)
        if parsed is None:
            raise InvalidInputError(f"Unknown source type: {source_type!r}", field='source_type')
        return parsed.value
