"""
Knowledge Schemas

Pydantic models that validate store input before anything is written.
"""

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from kb_core.db.models import SourceType
from kb_core.exceptions import ValidationError
from kb_core.utils.text import sanitize_content, sanitize_text
from .vectors import is_unit_vector, is_valid_vector

M = TypeVar('M', bound=BaseModel)

# Matches KnowledgeEntry.title column width
TITLE_MAX_LENGTH = 255


def _parse_source_type(value: Any) -> SourceType:
    source_type = SourceType.parse(value)
    if source_type is None:
        raise ValueError(f"unknown source type {value!r}")
    return source_type


def _require_text(value: Any, field: str, sanitizer) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    cleaned = sanitizer(value)
    if not cleaned:
        raise ValueError(f"{field} must not be empty")
    return cleaned


def _require_embedding(value: Any) -> str:
    if not isinstance(value, str) or not is_valid_vector(value):
        raise ValueError("embedding must be a serialized array of numbers")
    if not is_unit_vector(value):
        raise ValueError("embedding must be normalized to unit length")
    return value


def _require_metadata(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("metadata must be a mapping")
    return value


class EntryCreate(BaseModel):
    """Schema for creating a knowledge entry."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(max_length=TITLE_MAX_LENGTH)
    source_type: SourceType
    content: str
    embedding: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value: Any) -> str:
        return _require_text(value, 'title', sanitize_text)

    @field_validator('source_type', mode='before')
    @classmethod
    def _source_type(cls, value: Any) -> SourceType:
        return _parse_source_type(value)

    @field_validator('content', mode='before')
    @classmethod
    def _content(cls, value: Any) -> str:
        return _require_text(value, 'content', sanitize_content)

    @field_validator('embedding', mode='before')
    @classmethod
    def _embedding(cls, value: Any) -> str:
        return _require_embedding(value)

    @field_validator('metadata', mode='before')
    @classmethod
    def _metadata(cls, value: Any) -> Dict[str, Any]:
        return _require_metadata(value)


class EntryUpdate(BaseModel):
    """
    Schema for a sparse entry update.

    Missing or empty values become None and are left untouched; a
    non-empty value that is invalid (such as a malformed embedding) fails.
    """
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(default=None, max_length=TITLE_MAX_LENGTH)
    content: Optional[str] = None
    embedding: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator('title', mode='before')
    @classmethod
    def _title(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("title must be a string")
        return sanitize_text(value) or None

    @field_validator('content', mode='before')
    @classmethod
    def _content(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("content must be a string")
        return sanitize_content(value) or None

    @field_validator('embedding', mode='before')
    @classmethod
    def _embedding(cls, value: Any) -> Optional[str]:
        if value is None or value == '':
            return None
        return _require_embedding(value)

    @field_validator('metadata', mode='before')
    @classmethod
    def _metadata(cls, value: Any) -> Optional[Dict[str, Any]]:
        return _require_metadata(value) or None

    def changes(self) -> Dict[str, Any]:
        """Fields that carry a value to write."""
        return self.model_dump(exclude_none=True)


class ChunkCreate(BaseModel):
    """Schema for storing one chunk of an entry."""
    model_config = ConfigDict(frozen=True)

    parent_id: int = Field(gt=0, strict=True)
    source_type: SourceType
    chunk_index: int = Field(ge=0, strict=True)
    content: str
    embedding: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('source_type', mode='before')
    @classmethod
    def _source_type(cls, value: Any) -> SourceType:
        return _parse_source_type(value)

    @field_validator('content', mode='before')
    @classmethod
    def _content(cls, value: Any) -> str:
        return _require_text(value, 'content', str.strip)

    @field_validator('embedding', mode='before')
    @classmethod
    def _embedding(cls, value: Any) -> str:
        return _require_embedding(value)

    @field_validator('metadata', mode='before')
    @classmethod
    def _metadata(cls, value: Any) -> Dict[str, Any]:
        return _require_metadata(value)


def validate_model(model_cls: Type[M], **data: Any) -> M:
    """
    Build a schema instance, converting pydantic errors to ValidationError.

    Raises:
        ValidationError: with per-field messages in details['fields']
    """
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        field_errors: Dict[str, list] = {}
        for error in e.errors():
            field = '.'.join(str(part) for part in error['loc']) or '__root__'
            field_errors.setdefault(field, []).append(error['msg'])
        raise ValidationError(
            f"Invalid {model_cls.__name__}: {', '.join(sorted(field_errors))}",
            field_errors=field_errors
        ) from e
