"""
Knowledge Base Module

Provides text chunking, embedding generation, vector similarity,
entry/chunk storage and semantic search.
"""

from .chunking import Chunk, TextChunker, chunk_text, DEFAULT_CHUNK_SIZE
from .vectors import normalize, cosine_similarity, decode_vector, encode_vector
from .embeddings import EmbeddingProvider, OpenAIEmbeddingProvider, EmbeddingService
from .store import KnowledgeStore
from .indexer import ChunkIngestionWorkflow, IngestionResult, ChunkFailure
from .search import KnowledgeSearch, SearchResult

__all__ = [
    'Chunk',
    'TextChunker',
    'chunk_text',
    'DEFAULT_CHUNK_SIZE',
    'normalize',
    'cosine_similarity',
    'decode_vector',
    'encode_vector',
    'EmbeddingProvider',
    'OpenAIEmbeddingProvider',
    'EmbeddingService',
    'KnowledgeStore',
    'ChunkIngestionWorkflow',
    'IngestionResult',
    'ChunkFailure',
    'KnowledgeSearch',
    'SearchResult',
]
