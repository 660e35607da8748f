"""
Utilities module for Knowledge Core

Provides:
- Text sanitization for titles, content and embedding input
- UTC timestamp helpers
"""

from .text import (
    strip_tags,
    sanitize_text,
    sanitize_content,
)

from .timezone import (
    utc_now,
    datetime_to_iso,
)

__all__ = [
    # Text
    "strip_tags",
    "sanitize_text",
    "sanitize_content",
    # Timezone
    "utc_now",
    "datetime_to_iso",
]
