"""
Chunk Ingestion

Chunks an entry's text, embeds each chunk and stores it. A failing chunk
is recorded and skipped; it never aborts the rest of the batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from kb_core.db.models import SourceType
from kb_core.exceptions import ErrorKind, KnowledgeError, NotFoundError
from .chunking import Chunk, TextChunker
from .embeddings import EmbeddingService
from .store import KnowledgeStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkFailure:
    """Why one chunk was not stored"""
    index: int
    kind: ErrorKind
    message: str


@dataclass
class IngestionResult:
    """Outcome of one ingestion run"""
    parent_id: Any
    total: int = 0
    stored: int = 0
    failures: List[ChunkFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parent_id': self.parent_id,
            'total': self.total,
            'stored': self.stored,
            'failed': self.failed,
            'failures': [
                {'index': f.index, 'kind': f.kind.value, 'message': f.message}
                for f in self.failures
            ],
        }


class ChunkIngestionWorkflow:
    """Chunk -> embed -> store pipeline for one knowledge entry at a time."""

    def __init__(
        self,
        store: KnowledgeStore,
        embedding_service: EmbeddingService,
        chunker: Optional[TextChunker] = None
    ):
        self.store = store
        self.embedding_service = embedding_service
        self.chunker = chunker or TextChunker()

    def _validate_request(self, parent_id: Any, source_type: Any, text: Any, metadata: Any) -> Optional[SourceType]:
        if isinstance(parent_id, bool) or not isinstance(parent_id, int) or parent_id <= 0:
            log.error(f"Invalid parent_id for chunk creation: {parent_id!r}")
            return None

        parsed = SourceType.parse(source_type)
        if parsed is None:
            log.error(f"Invalid source_type for chunk creation: {source_type!r}")
            return None

        if not isinstance(text, str) or not text.strip():
            log.error("Invalid text for chunk creation")
            return None

        if metadata is not None and not isinstance(metadata, dict):
            log.error("Invalid metadata for chunk creation")
            return None

        try:
            parent = self.store.get_entry(parent_id)
        except KnowledgeError as e:
            log.error(f"Could not look up parent entry {parent_id}: {e.message}")
            return None

        if parent is None:
            log.error(f"Parent entry does not exist for chunk creation: {parent_id}")
            return None

        return parsed

    def _store_chunk(
        self,
        result: IngestionResult,
        chunk: Chunk,
        source_type: SourceType,
        metadata: Dict[str, Any]
    ) -> IngestionResult:
        try:
            embedding = self.embedding_service.generate_embedding(chunk.text)
            self.store.create_chunk(
                result.parent_id,
                source_type,
                chunk.index,
                chunk.text,
                embedding,
                metadata,
            )
        except KnowledgeError as e:
            log.warning(f"Failed to store chunk {chunk.index} for parent {result.parent_id}: {e.message}")
            result.failures.append(ChunkFailure(index=chunk.index, kind=e.kind, message=e.message))
            return result

        result.stored += 1
        return result

    def run(
        self,
        parent_id: int,
        source_type: Any,
        text: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> IngestionResult:
        """
        Ingest text as chunks of an existing entry.

        Chunk indices come from position in the text, so a skipped chunk
        leaves a gap rather than shifting later chunks.

        Returns:
            IngestionResult with stored count and per-chunk failures;
            structurally invalid requests yield an empty result and
            touch nothing
        """
        result = IngestionResult(parent_id=parent_id)

        parsed_type = self._validate_request(parent_id, source_type, text, metadata)
        if parsed_type is None:
            return result

        chunks = self.chunker.split(text)
        if not chunks:
            log.warning(f"No chunks generated from text for parent {parent_id}")
            return result

        result.total = len(chunks)
        meta = dict(metadata or {})

        for chunk in chunks:
            result = self._store_chunk(result, chunk, parsed_type, meta)

        if result.failed:
            log.warning(
                f"Created {result.stored} chunks, failed {result.failed} chunks for parent {parent_id}"
            )
        else:
            log.info(f"Successfully created {result.stored} chunks for parent {parent_id}")

        return result

    def ingest(
        self,
        parent_id: int,
        source_type: Any,
        text: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """Ingest text as chunks; returns the number of chunks stored."""
        return self.run(parent_id, source_type, text, metadata).stored

    def index_entry(
        self,
        title: str,
        source_type: Any,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Tuple[int, IngestionResult]:
        """
        Create an entry with a whole-content embedding, then ingest its chunks.

        Raises:
            InvalidInputError / EmbeddingUnavailableError: the entry
                embedding could not be produced
            ValidationError / StorageError: the entry could not be created

        Returns:
            (entry id, chunk ingestion result)
        """
        embedding = self.embedding_service.generate_embedding(content)
        entry_id = self.store.create_entry(title, source_type, content, embedding, metadata)

        entry = self.store.get_entry(entry_id)
        result = self.run(entry_id, entry.source_type, entry.content, metadata)

        log.info(f"Indexed entry {entry_id}: {result.stored}/{result.total} chunks stored")
        return entry_id, result

    def reingest(self, parent_id: int) -> IngestionResult:
        """
        Regenerate an entry's chunks from its current content.

        Existing chunks are removed first so chunk_index stays unique.

        Raises:
            NotFoundError: entry does not exist
        """
        entry = self.store.get_entry(parent_id)
        if entry is None:
            raise NotFoundError(
                f"Knowledge entry {parent_id} not found",
                resource_type='knowledge_entry',
                resource_id=parent_id
            )

        self.store.delete_chunks(parent_id)
        return self.run(parent_id, entry.source_type, entry.content, entry.entry_metadata or {})
