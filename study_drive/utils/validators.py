"""
Validation utilities for uploads and request inputs.
"""
from typing import Any, Dict, Optional


class ValidationError(Exception):
    """Validation error exception."""
    pass


class PayloadTooLarge(ValidationError):
    """Upload exceeds the configured byte ceiling."""
    pass


def validate_file_size(size_bytes: int, max_size_mb: int) -> bool:
    """
    Validate file size.

    Args:
        size_bytes: File size in bytes
        max_size_mb: Maximum allowed size in MB

    Returns:
        True if valid

    Raises:
        PayloadTooLarge if too large
    """
    max_bytes = max_size_mb * 1024 * 1024
    if size_bytes > max_bytes:
        raise PayloadTooLarge(
            f"File size ({size_bytes / 1024 / 1024:.1f} MB) exceeds maximum "
            f"allowed size ({max_size_mb} MB)"
        )
    return True


def validate_s3_key(s3_key: str) -> bool:
    """
    Validate S3 key format.

    Args:
        s3_key: S3 key to validate

    Returns:
        True if valid

    Raises:
        ValidationError if invalid
    """
    if not s3_key:
        raise ValidationError("Key cannot be empty")

    # S3 key length limits
    if len(s3_key) > 1024:
        raise ValidationError("Key exceeds maximum length (1024 characters)")

    # Check for invalid characters
    invalid_chars = ['\\', '{', '}', '^', '%', '`', '[', ']', '"', '>', '<', '~', '#', '|']
    for char in invalid_chars:
        if char in s3_key:
            raise ValidationError(f"Key contains invalid character: {char}")

    return True


def require_field(data: Dict[str, Any], field: str) -> str:
    """
    Fetch a required, non-blank string field from a request body.

    Raises:
        ValidationError if the field is missing or blank
    """
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing required field '{field}'")
    if not isinstance(value, str):
        raise ValidationError(f"Field '{field}' must be a string")
    return value.strip()


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    """
    Parse and clamp a listing page size.

    Args:
        raw: Raw query-string value (may be None)
        default: Value used when raw is absent
        maximum: Hard ceiling

    Returns:
        Page size in the range [1, maximum]

    Raises:
        ValidationError if raw is not an integer
    """
    if raw is None or raw == '':
        value = default
    else:
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid limit '{raw}': must be an integer")
    return max(1, min(value, maximum))


def parse_bool(raw: Optional[str], default: bool) -> bool:
    """Interpret a query-string flag."""
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')
