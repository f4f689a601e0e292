"""Identifier normalization and classification.

An identifier is either an email address or a phone number. Both are
normalized before every lookup and write so that " ANA@X.COM " and
"ana@x.com" are the same account.
"""

import re
from enum import StrEnum

from micampofresco.core.errors import ValidationError

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_PATTERN = re.compile(r"^\+?\d{8,15}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")

_INVALID_IDENTIFIER_MSG = "Invalid email or phone number"


class IdentifierKind(StrEnum):
    """What an identifier is."""

    EMAIL = "email"
    PHONE = "phone"


def normalize_phone(value: str) -> str:
    """Strip whitespace and common separators from a phone number."""
    return _PHONE_SEPARATORS.sub("", value.strip())


def is_email(value: str) -> bool:
    """True if value has the basic local@domain.tld shape."""
    return bool(_EMAIL_PATTERN.match(value))


def is_phone(value: str) -> bool:
    """True if value is an optional '+' followed by 8-15 digits."""
    return bool(_PHONE_PATTERN.match(value))


def normalize_identifier(value: str | None) -> tuple[str, IdentifierKind]:
    """Normalize and classify an identifier.

    Emails are trimmed and lower-cased. Phones are trimmed and stripped of
    spaces, dashes, dots and parentheses.

    Args:
        value: Raw identifier from the request.

    Returns:
        (normalized identifier, kind).

    Raises:
        ValidationError: If the value is missing or neither an email nor
            a phone number.
    """
    if not value or not value.strip():
        raise ValidationError(_INVALID_IDENTIFIER_MSG)

    candidate = value.strip()
    if "@" in candidate:
        email = candidate.lower()
        if is_email(email):
            return email, IdentifierKind.EMAIL
        raise ValidationError(_INVALID_IDENTIFIER_MSG)

    phone = normalize_phone(candidate)
    if is_phone(phone):
        return phone, IdentifierKind.PHONE
    raise ValidationError(_INVALID_IDENTIFIER_MSG)


def normalize_optional_phone(value: str | None) -> str | None:
    """Normalize an optional phone field.

    Returns:
        Normalized phone, or None when the field is absent or blank.

    Raises:
        ValidationError: If a non-blank value is not a phone number.
    """
    if value is None or not value.strip():
        return None
    phone = normalize_phone(value)
    if not is_phone(phone):
        raise ValidationError("Invalid phone number")
    return phone
