import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Strip control characters and surrounding whitespace from a short field.
    Text is stored as entered; clients escape it when rendering.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return _CONTROL_CHARS.sub("", value).strip()


def sanitize_text(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """
    Clean free-text input (conditions, notes, medical history).

    Strips surrounding whitespace and control characters and returns None
    for blank input.

    Raises:
        ValueError: If the cleaned text exceeds max_length
    """
    value = sanitize_string(value)
    if not value:
        return None

    if max_length is not None and len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return value
