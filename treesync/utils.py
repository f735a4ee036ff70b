"""Utility functions for treesync."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation

# =============================================================================
# Constants for file operations
# =============================================================================

# Buffer size for streaming file content between contexts (1 MB)
DEFAULT_COPY_BUFFER_SIZE: int = 1024 * 1024

# Canonical separator used in every relative path
PATH_SEPARATOR: str = "/"


# =============================================================================
# Timestamp utilities
# =============================================================================

# Reference point for nanosecond conversions
EPOCH: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ns_to_utc(timestamp_ns: int) -> datetime:
    """Convert nanoseconds since the epoch to an aware UTC datetime.

    Precision below one microsecond is dropped, since that is the
    resolution of ``datetime``.
    """
    return EPOCH + timedelta(microseconds=timestamp_ns // 1000)


def utc_to_ns(value: datetime) -> int:
    """Convert a datetime to nanoseconds since the epoch.

    Integer arithmetic only, so a value read back from the filesystem
    after ``os.utime(..., ns=...)`` compares exactly equal.
    """
    delta = normalize_utc(value) - EPOCH
    return (delta // timedelta(microseconds=1)) * 1000


def epoch_text_to_ns(text: str) -> int:
    """Parse a decimal seconds-since-epoch string (``find %T@``) exactly.

    Raises:
        ValueError: If text is not a decimal number
    """
    try:
        return int(Decimal(text) * 1_000_000_000)
    except (InvalidOperation, OverflowError) as e:
        raise ValueError(f"Invalid timestamp: {text!r}") from e


def normalize_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def truncate_to_second(value: datetime) -> datetime:
    """Drop the sub-second part of a datetime.

    SFTP sets modification times in whole seconds, so comparisons
    across a remote link use this granularity.
    """
    return value.replace(microsecond=0)


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
