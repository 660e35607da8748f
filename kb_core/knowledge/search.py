"""
Knowledge Search

Ranks stored chunk and entry embeddings against a query embedding by
cosine similarity.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

import numpy as np

from kb_core.exceptions import InvalidInputError
from .embeddings import EmbeddingService
from .store import KnowledgeStore
from .vectors import cosine_similarity, decode_vector

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """A scored chunk or entry"""
    id: int
    parent_id: int
    title: str
    source_type: str
    chunk_index: Optional[int]
    content: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class KnowledgeSearch:
    """Semantic search over a knowledge store."""

    def __init__(self, store: KnowledgeStore, embedding_service: EmbeddingService):
        self.store = store
        self.embedding_service = embedding_service

    def _query_vector(self, query: str, limit: int) -> np.ndarray:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidInputError(f"Invalid search limit: {limit!r}", field='limit')
        return np.asarray(self.embedding_service.embed_query(query))

    @staticmethod
    def _rank(results: List[SearchResult], min_score: float, limit: int) -> List[SearchResult]:
        kept = [r for r in results if r.score >= min_score]
        kept.sort(key=lambda r: (-r.score, r.parent_id, r.chunk_index or 0))
        return kept[:limit]

    def search_chunks(
        self,
        query: str,
        min_score: float = 0.0,
        limit: int = 5,
        source_type: Optional[Any] = None
    ) -> List[SearchResult]:
        """
        Find the chunks most similar to query.

        Chunks whose stored embedding cannot be decoded or has the wrong
        dimension are skipped rather than scored.

        Raises:
            InvalidInputError: blank query or limit < 1
            EmbeddingUnavailableError: the query could not be embedded
        """
        query_vector = self._query_vector(query, limit)

        results = []
        skipped = 0
        for chunk, title in self.store.chunk_rows(source_type):
            vector = decode_vector(chunk.embedding)
            if vector is None or vector.shape != query_vector.shape:
                skipped += 1
                continue
            results.append(SearchResult(
                id=chunk.id,
                parent_id=chunk.parent_id,
                title=title,
                source_type=chunk.source_type,
                chunk_index=chunk.chunk_index,
                content=chunk.content,
                score=cosine_similarity(query_vector, vector),
            ))

        if skipped:
            log.warning(f"Skipped {skipped} chunks with unusable embeddings")

        ranked = self._rank(results, min_score, limit)
        log.info(f"Chunk search returned {len(ranked)} of {len(results)} scored chunks")
        return ranked

    def search_entries(
        self,
        query: str,
        min_score: float = 0.0,
        limit: int = 5,
        source_type: Optional[Any] = None
    ) -> List[SearchResult]:
        """Find the entries whose whole-content embedding is most similar to query."""
        query_vector = self._query_vector(query, limit)

        results = []
        for entry in self.store.list_entries(source_type):
            vector = decode_vector(entry.embedding) if entry.embedding else None
            if vector is None or vector.shape != query_vector.shape:
                continue
            results.append(SearchResult(
                id=entry.id,
                parent_id=entry.id,
                title=entry.title,
                source_type=entry.source_type,
                chunk_index=None,
                content=entry.content,
                score=cosine_similarity(query_vector, vector),
            ))

        return self._rank(results, min_score, limit)
