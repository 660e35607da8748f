"""
Embedding Generation

Wraps an embedding provider (OpenAI's embeddings API by default) behind a
service that validates input, truncates it to the provider limit, checks
the returned vector and normalizes it for storage.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from kb_core import __version__
from kb_core.exceptions import EmbeddingUnavailableError, InvalidInputError
from kb_core.utils.text import sanitize_text
from .vectors import decode_vector, encode_vector, is_unit_vector, normalize

log = logging.getLogger(__name__)

# Embedding model configuration
OPENAI_EMBEDDING_URL = 'https://api.openai.com/v1/embeddings'
EMBEDDING_MODEL = "text-embedding-ada-002"
EMBEDDING_DIMENSION = 1536
MAX_INPUT_CHARS = 2000
REQUEST_TIMEOUT = 30  # seconds

API_KEY_PATTERN = re.compile(r'^sk-[A-Za-z0-9_\-]{20,}$')
USER_AGENT = f'knowledge-core/{__version__}'


class EmbeddingProvider(ABC):
    """Converts text into a raw, fixed-length embedding vector."""

    name = "provider"
    dimension = EMBEDDING_DIMENSION

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Generate the raw embedding for text.

        Raises:
            EmbeddingUnavailableError (or any exception) on failure
        """


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI-compatible embeddings endpoint called over HTTPS with a bearer key."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = EMBEDDING_MODEL,
        api_url: str = OPENAI_EMBEDDING_URL,
        dimension: int = EMBEDDING_DIMENSION,
        timeout: int = REQUEST_TIMEOUT
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.dimension = dimension
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "OpenAIEmbeddingProvider":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
            api_url=settings.EMBEDDING_API_URL,
            dimension=settings.EMBEDDING_DIMENSION,
            timeout=settings.EMBEDDING_TIMEOUT,
        )

    def embed(self, text: str) -> List[float]:
        if not self.api_key:
            log.error("OpenAI API key not configured")
            raise EmbeddingUnavailableError("OpenAI API key not configured", provider=self.name)

        # Other OpenAI-compatible endpoints issue their own key formats
        if self.api_url == OPENAI_EMBEDDING_URL and not API_KEY_PATTERN.match(self.api_key):
            log.error("Invalid OpenAI API key format")
            raise EmbeddingUnavailableError("Invalid OpenAI API key format", provider=self.name)

        try:
            response = requests.post(
                self.api_url,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                    'User-Agent': USER_AGENT,
                },
                json={
                    'model': self.model,
                    'input': text
                },
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            log.error("OpenAI API timeout")
            raise EmbeddingUnavailableError("Embedding request timed out", provider=self.name) from e
        except requests.exceptions.RequestException as e:
            log.error(f"OpenAI API request failed: {e}")
            raise EmbeddingUnavailableError(f"Embedding request failed: {e}", provider=self.name) from e

        if response.status_code != 200:
            log.error(f"OpenAI API error: {response.status_code} - {response.text}")
            raise EmbeddingUnavailableError(
                f"Embedding API returned HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code
            )

        try:
            embedding = response.json()['data'][0]['embedding']
        except (ValueError, KeyError, IndexError, TypeError) as e:
            log.error("Invalid embedding response from OpenAI API")
            raise EmbeddingUnavailableError("Malformed embedding response", provider=self.name) from e

        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingUnavailableError("Empty embedding in response", provider=self.name)

        return embedding


class EmbeddingService:
    """
    Single best-effort embedding call per text.

    No retries, caching or batching: a failure of any kind is reported as
    EmbeddingUnavailableError and retry policy belongs to the caller.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        dimension: int = EMBEDDING_DIMENSION,
        max_input_chars: int = MAX_INPUT_CHARS
    ):
        self.provider = provider
        self.dimension = dimension
        self.max_input_chars = max_input_chars

    @classmethod
    def from_settings(cls, settings, provider: Optional[EmbeddingProvider] = None) -> "EmbeddingService":
        """Build a service from explicit settings, defaulting to the OpenAI provider."""
        return cls(
            provider=provider or OpenAIEmbeddingProvider.from_settings(settings),
            dimension=settings.EMBEDDING_DIMENSION,
            max_input_chars=settings.EMBEDDING_MAX_INPUT_CHARS,
        )

    def prepare_text(self, text: str) -> str:
        """Validate, sanitize and truncate text to the provider input limit."""
        if not isinstance(text, str) or not text.strip():
            log.error("Invalid text input for embedding generation")
            raise InvalidInputError("Text to embed must be a non-empty string", field="text")

        cleaned = sanitize_text(text)
        if not cleaned:
            log.error("Empty text after sanitization")
            raise InvalidInputError("Text to embed is empty after sanitization", field="text")

        return cleaned[:self.max_input_chars]

    def embed_query(self, text: str) -> List[float]:
        """
        Embed text and return the normalized vector.

        Raises:
            InvalidInputError: text is empty or not a string
            EmbeddingUnavailableError: provider failed or broke its contract
        """
        prepared = self.prepare_text(text)
        provider_name = getattr(self.provider, 'name', type(self.provider).__name__)

        try:
            raw = self.provider.embed(prepared)
        except EmbeddingUnavailableError:
            raise
        except Exception as e:
            log.error(f"Error generating embedding: {e}")
            raise EmbeddingUnavailableError(f"Embedding provider failed: {e}", provider=provider_name) from e

        vector = decode_vector(raw)
        if vector is None:
            log.error("Invalid embedding returned by provider")
            raise EmbeddingUnavailableError("Provider returned a malformed vector", provider=provider_name)

        if vector.size != self.dimension:
            log.error(f"Unexpected embedding dimensions: {vector.size}")
            raise EmbeddingUnavailableError(
                f"Expected {self.dimension} dimensions, got {vector.size}",
                provider=provider_name
            )

        normalized = normalize(vector)
        if not is_unit_vector(normalized):
            log.error("Failed to normalize embedding")
            raise EmbeddingUnavailableError("Failed to normalize embedding", provider=provider_name)

        return normalized

    def generate_embedding(self, text: str) -> str:
        """
        Generate the serialized, normalized embedding for text.

        Returns:
            JSON array string of a unit-length vector
        """
        return encode_vector(self.embed_query(text))
