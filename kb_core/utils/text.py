"""
Text Sanitization Utilities

Cleans user supplied text before it is stored or sent to an embedding provider.
"""

import re
from typing import Optional

_SCRIPT_STYLE_RE = re.compile(r'<(script|style)\b[^>]*>.*?</\1\s*>', re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r'<[^<>]+>')
_WHITESPACE_RE = re.compile(r'\s+')
_BLANK_LINES_RE = re.compile(r'\n{3,}')


def strip_tags(text: str) -> str:
    """Remove HTML tags, dropping script/style bodies entirely."""
    text = _SCRIPT_STYLE_RE.sub('', text)
    return _TAG_RE.sub('', text)


def sanitize_text(text: Optional[str]) -> str:
    """
    Sanitize a single-line text field.

    Strips tags and collapses every whitespace run (including newlines
    and tabs) to a single space.

    Returns:
        Cleaned string, empty if nothing usable remains
    """
    if not text:
        return ''
    return _WHITESPACE_RE.sub(' ', strip_tags(text)).strip()


def sanitize_content(text: Optional[str]) -> str:
    """Sanitize long-form content, keeping its line structure."""
    if not text:
        return ''
    cleaned = strip_tags(text).replace('\r\n', '\n')
    return _BLANK_LINES_RE.sub('\n\n', cleaned).strip()
