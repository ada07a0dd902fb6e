# utils/sanitization.py
from typing import Any, Optional
import re

CONTROL_CHARS = r"[\x00-\x08\x0b-\x0c\x0e-\x1f\x7f-\x9f]"


def clean_text(value: Optional[str]) -> str:
    if value is None:
        return ""

    text = re.sub(CONTROL_CHARS, "", value)
    text = text.strip()

    # Optional: normalize whitespace
    text = re.sub(r"\s+", " ", text)

    return text


def strip_control_chars(value: Optional[str]) -> str:
    """Removes control characters but keeps line breaks, for document text."""
    if value is None:
        return ""
    return re.sub(CONTROL_CHARS, "", value).strip()


def is_nonempty_text(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return bool(clean_text(value))


def count_words(value: Optional[str]) -> int:
    if not value or not value.strip():
        return 0
    return len(value.split())


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[:limit]
