"""
Input normalization shared by the identity resolver, pending points ledger
and bulk award processor.
"""
import re

from .exceptions import FormatError, ValidationError

MAX_VARCHAR_LENGTH = 255

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def normalize_email(raw) -> str:
    """
    Trim and lower-case an email, validating its shape.

    Raises:
        FormatError: If the value is empty or not email-shaped
    """
    if not isinstance(raw, str) or not raw.strip():
        raise FormatError('Email is required', field='email')
    email = raw.strip().lower()
    if len(email) > MAX_VARCHAR_LENGTH or not EMAIL_PATTERN.fullmatch(email):
        raise FormatError('Invalid email format', field='email')
    return email


def positive_int(raw, field: str = 'points') -> int:
    """
    Coerce a points value to a positive integer.

    Accepts ints, integral floats and numeric strings ("100", "100.0").
    Bools are rejected even though they are ints.

    Raises:
        ValidationError: If the value is missing, non-numeric, fractional or <= 0
    """
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)

    value = raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)

    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)
        if value <= 0:
            raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)
        if not value.is_integer():
            raise ValidationError(f'{field.capitalize()} must be a whole number', field=field)
        value = int(value)

    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f'{field.capitalize()} must be a positive number', field=field)
    return value


def sanitize_string(value, max_length: int = MAX_VARCHAR_LENGTH):
    """Trimmed, truncated string, or None if not a non-empty string."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:max_length]
