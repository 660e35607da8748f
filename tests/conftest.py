"""Shared fixtures for Knowledge Core tests."""

import hashlib
from typing import Iterable, List

import pytest

from kb_core.db import KnowledgeEntry, get_engine, get_session, init_db
from kb_core.knowledge import (
    ChunkIngestionWorkflow,
    EmbeddingProvider,
    EmbeddingService,
    KnowledgeSearch,
    KnowledgeStore,
    TextChunker,
    encode_vector,
    normalize,
)

DIMENSION = 8


def hash_vector(text: str, dimension: int = DIMENSION) -> List[float]:
    """Deterministic, never-zero raw vector derived from text."""
    digest = hashlib.sha256(text.encode('utf-8')).digest()
    return [digest[i % len(digest)] - 127.5 for i in range(dimension)]


class HashEmbeddingProvider(EmbeddingProvider):
    """Deterministic provider that records every text it embeds."""

    name = "hash"

    def __init__(self, dimension: int = DIMENSION):
        self.dimension = dimension
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return hash_vector(text, self.dimension)


class ScriptedProvider(HashEmbeddingProvider):
    """Provider that times out on the given (1-based) call numbers."""

    name = "scripted"

    def __init__(self, fail_on: Iterable[int] = (), dimension: int = DIMENSION):
        super().__init__(dimension)
        self.fail_on = set(fail_on)

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if len(self.calls) in self.fail_on:
            raise TimeoutError("provider timed out")
        return hash_vector(text, self.dimension)


@pytest.fixture()
def engine():
    engine = get_engine('sqlite://')
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    session = get_session(engine)
    yield session
    session.close()


@pytest.fixture()
def store(session) -> KnowledgeStore:
    return KnowledgeStore(session)


@pytest.fixture()
def provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()


@pytest.fixture()
def embedding_service(provider) -> EmbeddingService:
    return EmbeddingService(provider, dimension=DIMENSION, max_input_chars=2000)


@pytest.fixture()
def workflow(store, embedding_service) -> ChunkIngestionWorkflow:
    return ChunkIngestionWorkflow(store, embedding_service, TextChunker(max_length=40))


@pytest.fixture()
def search(store, embedding_service) -> KnowledgeSearch:
    return KnowledgeSearch(store, embedding_service)


@pytest.fixture()
def unit_embedding() -> str:
    """A serialized unit vector of the test dimension."""
    return encode_vector(normalize(hash_vector("sample")))


@pytest.fixture()
def make_entry(session, unit_embedding):
    """Insert an entry row directly, optionally with a fixed id."""
    def _make_entry(entry_id=None, title="Sample", source_type="text", content="Sample content.", metadata=None):
        entry = KnowledgeEntry(
            id=entry_id,
            title=title,
            source_type=source_type,
            content=content,
            embedding=unit_embedding,
            entry_metadata=metadata or {},
        )
        session.add(entry)
        session.commit()
        return entry.id
    return _make_entry
