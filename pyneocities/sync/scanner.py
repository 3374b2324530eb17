"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..exceptions import LocalPathNotFoundError, NotADirectoryValidationError
from ..utils import normalize_relative_path, parse_remote_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalEntry:
    """Represents a local file or directory with metadata."""

    path: Path
    """Absolute path to the entry"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    is_dir: bool = False
    """Whether the entry is a directory"""

    size: int = 0
    """File size in bytes (0 for directories)"""

    mtime: float = 0.0
    """Last modification time (Unix timestamp)"""

    @classmethod
    def from_path(cls, entry_path: Path, base_path: Path) -> "LocalEntry":
        """Create LocalEntry from a path.

        Args:
            entry_path: Absolute path to the file or directory
            base_path: Base path for calculating relative paths

        Returns:
            LocalEntry instance
        """
        stat = entry_path.stat()
        is_dir = entry_path.is_dir()
        return cls(
            path=entry_path,
            # Use as_posix() to ensure forward slashes on all platforms
            relative_path=entry_path.relative_to(base_path).as_posix(),
            is_dir=is_dir,
            size=0 if is_dir else stat.st_size,
            mtime=stat.st_mtime,
        )


@dataclass(frozen=True)
class RemoteEntry:
    """Represents a file or directory stored on the site."""

    path: str
    """Path relative to the site root, without leading slash"""

    is_dir: bool = False
    """Whether the entry is a directory"""

    size: Optional[int] = None
    """File size in bytes (files only)"""

    updated_at: Optional[str] = None
    """Last-updated timestamp as reported by the API"""

    sha1_hash: Optional[str] = None
    """SHA-1 of the stored content when the listing provides it"""

    @property
    def updated(self) -> Optional[datetime]:
        """Parsed last-updated timestamp (UTC), or None if unavailable."""
        return parse_remote_timestamp(self.updated_at)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RemoteEntry":
        """Create a RemoteEntry from one item of a list response.

        Args:
            data: Item with path, is_directory, size and updated_at keys

        Returns:
            RemoteEntry instance
        """
        is_dir = bool(data.get("is_directory", False))
        size = data.get("size")
        return cls(
            path=normalize_relative_path(str(data.get("path", ""))),
            is_dir=is_dir,
            size=None if is_dir or size is None else int(size),
            updated_at=data.get("updated_at"),
            sha1_hash=data.get("sha1_hash"),
        )


def remote_entries_from_listing(response: dict[str, Any]) -> list[RemoteEntry]:
    """Convert a list response envelope into RemoteEntry objects.

    Entries without a path are dropped.
    """
    entries = []
    for item in response.get("files") or []:
        entry = RemoteEntry.from_api(item)
        if entry.path:
            entries.append(entry)
    return entries


class DirectoryScanner:
    """Scans a local directory tree.

    Every regular file and directory is returned, hidden entries included.
    Entries are produced depth-first with names sorted inside each
    directory, so repeated scans of an unchanged tree give the same order.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> entries = scanner.scan(Path("/home/user/site"))
        >>> files = [e for e in entries if not e.is_dir]
    """

    def __init__(self, follow_symlinks: bool = False):
        """Initialize directory scanner.

        Args:
            follow_symlinks: Whether to descend into symlinked directories
        """
        self.follow_symlinks = follow_symlinks

    def scan(self, root: Path) -> list[LocalEntry]:
        """Recursively scan a local directory.

        Args:
            root: Directory to scan

        Returns:
            List of LocalEntry objects (files and directories)

        Raises:
            LocalPathNotFoundError: If root does not exist
            NotADirectoryValidationError: If root is not a directory
        """
        if not root.exists():
            raise LocalPathNotFoundError(root)
        if not root.is_dir():
            raise NotADirectoryValidationError(root)

        entries: list[LocalEntry] = []
        self._scan_directory(root, root, entries)
        logger.debug(f"Scanned {len(entries)} entries under {root}")
        return entries

    def _scan_directory(
        self, directory: Path, base_path: Path, entries: list[LocalEntry]
    ) -> None:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except PermissionError as e:
            # Skip directories we can't read
            logger.warning(f"Permission denied, skipping {directory}: {e}")
            return

        for item in children:
            try:
                if item.is_dir():
                    entries.append(LocalEntry.from_path(item, base_path))
                    if self.follow_symlinks or not item.is_symlink():
                        self._scan_directory(item, base_path, entries)
                elif item.is_file():
                    entries.append(LocalEntry.from_path(item, base_path))
            except OSError as e:
                # Entry vanished or can't be stat'ed
                logger.warning(f"Skipping {item}: {e}")
