"""Utility functions and constants for pyremsync."""

import re
from collections.abc import Iterator, Sequence
from typing import TypeVar

T = TypeVar("T")

# =============================================================================
# Constants for sync operations
# =============================================================================

# Items per upload batch; matches the target's batch-call limit
UPLOAD_CHUNK_SIZE: int = 5

# The device rejects documents larger than 50 MB (50 * 1024 * 1024)
MAX_DOCUMENT_SIZE: int = 52428800

# Extensions the device can render (case-sensitive suffix match)
SUPPORTED_EXTENSIONS: tuple[str, ...] = (".pdf", ".epub")

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def is_uuid(value: str) -> bool:
    """Check whether a string has the shape of a UUID.

    Args:
        value: String to check

    Returns:
        True for strings like "1b4e28ba-2fa1-11d2-883f-0016d3cca427"
    """
    return bool(_UUID_RE.fullmatch(value))


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split a sequence into consecutive lists of at most ``size`` items.

    Examples:
        >>> [len(c) for c in chunked(list(range(12)), 5)]
        [5, 5, 2]
    """
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


def file_extension(name: str) -> str:
    """Return the part of a file name after the last dot.

    A name without a dot is returned unchanged.
    """
    return name.rsplit(".", 1)[-1]


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
