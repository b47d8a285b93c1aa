"""Input sanitisation helpers."""

import re

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<[^>]*>")
_ANGLE_BRACKETS = re.compile(r"[<>]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_input(value) -> str:
    """Strip markup from free text and normalise whitespace.

    Non-string input yields an empty string.
    """
    if not isinstance(value, str):
        return ""

    cleaned = _SCRIPT_BLOCK.sub("", value)
    cleaned = _HTML_TAG.sub("", cleaned)
    cleaned = _ANGLE_BRACKETS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()


def sanitize_optional(value):
    """Sanitise optional free text; empty results become ``None``."""
    if value is None:
        return None
    cleaned = sanitize_input(value)
    return cleaned or None
