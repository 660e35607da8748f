"""
Text Chunking

Splits text into bounded, sentence-coherent chunks suitable for embedding.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from kb_core.exceptions import InvalidInputError

log = logging.getLogger(__name__)

# Configuration
DEFAULT_CHUNK_SIZE = 500  # characters

# Whitespace that directly follows a terminal punctuation mark
SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])\s+')


@dataclass(frozen=True)
class Chunk:
    """Represents a text chunk and its position in the source text"""
    index: int
    text: str


def split_sentences(text: str) -> List[str]:
    """Split text at sentence boundaries, dropping empty pieces."""
    return [s for s in SENTENCE_BOUNDARY.split(text.strip()) if s]


def chunk_text(text: str, max_length: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """
    Split text into chunks of whole sentences.

    Sentences are accumulated until adding the next one would push the
    chunk past max_length characters. A sentence longer than max_length
    becomes a chunk of its own and is never split.

    Args:
        text: Text to split
        max_length: Target maximum chunk length in characters

    Returns:
        List of trimmed, non-empty chunk strings (empty for blank text)
    """
    if not isinstance(text, str):
        raise InvalidInputError("Text to chunk must be a string", field="text")
    if isinstance(max_length, bool) or not isinstance(max_length, int) or max_length <= 0:
        raise InvalidInputError(f"Invalid max_length for chunking: {max_length!r}", field="max_length")

    if not text.strip():
        return []

    chunks: List[str] = []
    current = ""

    for sentence in split_sentences(text):
        candidate = f"{current} {sentence}" if current else sentence
        if current and len(candidate) > max_length:
            chunks.append(current.strip())
            current = sentence
        else:
            current = candidate

    # Don't forget the last chunk
    if current.strip():
        chunks.append(current.strip())

    return chunks


class TextChunker:
    """Sentence chunker bound to a configured maximum chunk length."""

    def __init__(self, max_length: int = DEFAULT_CHUNK_SIZE):
        if isinstance(max_length, bool) or not isinstance(max_length, int) or max_length <= 0:
            raise InvalidInputError(f"Invalid max_length for chunking: {max_length!r}", field="max_length")
        self.max_length = max_length

    @classmethod
    def from_settings(cls, settings) -> "TextChunker":
        return cls(max_length=settings.DEFAULT_CHUNK_SIZE)

    def chunk(self, text: str, max_length: Optional[int] = None) -> List[str]:
        return chunk_text(text, self.max_length if max_length is None else max_length)

    def split(self, text: str) -> List[Chunk]:
        """Chunk text and attach zero-based positions."""
        chunks = [Chunk(index=i, text=t) for i, t in enumerate(self.chunk(text))]
        log.debug(f"Split text into {len(chunks)} chunks (max {self.max_length} chars)")
        return chunks
