"""
Knowledge Core - semantic knowledge-base library

This package provides the pieces behind semantic retrieval:
- Sentence-coherent text chunking
- Embedding generation and vector normalization
- Cosine similarity scoring and search
- Knowledge entry and chunk storage with cascade cleanup
"""

__version__ = "1.0.0"
