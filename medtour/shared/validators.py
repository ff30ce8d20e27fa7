"""Shared validation utilities"""

import re
from datetime import datetime, timezone
from typing import Optional

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_user_id(user_id: Optional[str]) -> str:
    """
    Validate an identity-provider user id (e.g. ``user_2abc...``).

    User ids end up in upload directory names, so anything that is not a
    plain token is rejected.

    Raises:
        ValueError: If the id is empty or contains unexpected characters
    """
    if not user_id or not _USER_ID_PATTERN.match(user_id):
        raise ValueError("Invalid user identifier")
    return user_id


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an international phone number.

    Keeps a leading "+" and the digits, drops spaces, dashes, dots and
    parentheses.

    Raises:
        ValueError: If the number has fewer than 7 or more than 15 digits
    """
    if not phone:
        return phone

    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"\D", "", phone)

    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must contain between 7 and 15 digits")

    return f"{prefix}{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
