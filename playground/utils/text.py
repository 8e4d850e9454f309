"""
Text helpers

Small utilities to clean user text before it is embedded or placed in a
prompt.
"""
import re

_WHITESPACE_RE = re.compile(r"\s+")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]+")


def normalize_whitespace(text: str) -> str:
    """Collapse every run of spaces, tabs and newlines into one space.

    Word boundaries are kept, so "what  is\\tRAG?\\n" becomes "what is RAG?".
    """
    if text is None:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_control_characters(text: str) -> str:
    """Remove non-printable/control characters from text."""
    if text is None:
        return ""
    # Keep newline and tab
    return _CONTROL_RE.sub("", text)
