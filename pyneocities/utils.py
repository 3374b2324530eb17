"""Utility functions for pyneocities."""

import hashlib
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path, PurePosixPath
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Read size used when hashing or streaming files
HASH_CHUNK_SIZE: int = 64 * 1024


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_remote_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp returned by the Neocities API.

    The API uses RFC 2822 dates ("Sat, 13 Feb 2016 03:04:00 -0000"); ISO 8601
    strings are accepted as well. Naive values are taken to be UTC.

    Args:
        timestamp_str: Timestamp string from the API

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails

    Examples:
        >>> parse_remote_timestamp("Sat, 13 Feb 2016 03:04:00 -0000").year
        2016
        >>> parse_remote_timestamp("2025-01-15T10:30:00Z").hour
        10
    """
    if not timestamp_str:
        return None

    dt: Optional[datetime] = None
    try:
        dt = parsedate_to_datetime(timestamp_str)
    except (TypeError, ValueError, IndexError):
        dt = None

    if dt is None:
        value = timestamp_str.strip()
        # The 'Z' suffix indicates UTC time
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_local_time(timestamp_str: Optional[str]) -> str:
    """Render an API timestamp in the local timezone for display."""
    dt = parse_remote_timestamp(timestamp_str)
    if dt is None:
        return timestamp_str or ""
    return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S %z")


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


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_sha1(file_path: Path) -> str:
    """Calculate the SHA-1 hex digest of a file.

    This is the digest the upload_hash endpoint compares against.

    Args:
        file_path: File to hash

    Returns:
        Lowercase hex digest
    """
    digest = hashlib.sha1()  # noqa: S324
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Path utilities
# =============================================================================


def normalize_relative_path(path: str) -> str:
    """Normalize a relative path to forward slashes without leading markers.

    Examples:
        >>> normalize_relative_path("./docs\\\\index.html")
        'docs/index.html'
        >>> normalize_relative_path("/images/")
        'images'
    """
    value = path.replace("\\", "/")
    while value.startswith("./"):
        value = value[2:]
    return value.strip("/")


def join_remote_path(*parts: str) -> str:
    """Join remote path parts into an absolute site path.

    Examples:
        >>> join_remote_path("/", "images", "cat.png")
        '/images/cat.png'
        >>> join_remote_path("", "cat.png")
        '/cat.png'
    """
    segments = [normalize_relative_path(p) for p in parts]
    return "/" + "/".join(s for s in segments if s)


def is_safe_relative_path(path: str) -> bool:
    """Check that a remote path stays inside the local root when joined.

    Examples:
        >>> is_safe_relative_path("dir/f.txt")
        True
        >>> is_safe_relative_path("../etc/passwd")
        False
    """
    if not path or path.startswith("/") or "\\" in path:
        return False
    return ".." not in PurePosixPath(path).parts


def parent_paths(path: str) -> list[str]:
    """Return all ancestor directories of a relative path, nearest first.

    Examples:
        >>> parent_paths("a/b/c.txt")
        ['a/b', 'a']
        >>> parent_paths("c.txt")
        []
    """
    parents = []
    parts = path.split("/")[:-1]
    while parts:
        parents.append("/".join(parts))
        parts.pop()
    return parents
