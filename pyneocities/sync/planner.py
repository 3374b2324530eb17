"""Sync planning: decides what to transfer for push and pull runs."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..utils import (
    calculate_sha1,
    is_safe_relative_path,
    normalize_relative_path,
    parent_paths,
)
from .ignore import IgnoreFilter
from .oracle import RemoteHashOracle
from .scanner import LocalEntry, RemoteEntry
from .state import Checkpoint

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be planned during sync."""

    UPLOAD = "upload"
    """Upload local file to the site"""

    SKIP_EXISTS = "skip_exists"
    """Site already stores identical content"""

    DELETE = "delete"
    """Delete a site entry that no longer exists locally"""

    DOWNLOAD = "download"
    """Download site file to the local tree"""

    SKIP_CURRENT = "skip_current"
    """Local copy is current since the last pull"""

    @property
    def is_skip(self) -> bool:
        return self in (SyncAction.SKIP_EXISTS, SyncAction.SKIP_CURRENT)


@dataclass(frozen=True)
class SyncDecision:
    """One planned action."""

    action: SyncAction
    """Action to take"""

    relative_path: str
    """Path on the site (relative, forward slashes)"""

    local_path: Optional[Path] = None
    """Local file the action reads or writes"""

    reason: str = ""
    """Human-readable reason for this decision"""

    is_dir: bool = False
    """Whether the remote entry is a directory (deletes only)"""


def normalize_exclusions(excluded: Iterable[str]) -> frozenset[str]:
    """Normalize explicit exclusions into site-relative paths."""
    excluded_set = {normalize_relative_path(e) for e in excluded}
    excluded_set.discard("")
    return frozenset(excluded_set)


def is_path_excluded(relative_path: str, excluded: Iterable[str]) -> bool:
    """Check a path against explicit exclusions.

    A path is excluded when it equals an exclusion or lies inside an
    excluded directory.

    A frozenset is taken as already normalized (see normalize_exclusions).

    Examples:
        >>> is_path_excluded("node_modules/x/index.js", ["node_modules"])
        True
        >>> is_path_excluded("secret.txt", ["secret.txt"])
        True
        >>> is_path_excluded("docs/secret.txt", ["secret.txt"])
        False
    """
    if isinstance(excluded, frozenset):
        excluded_set = excluded
    else:
        excluded_set = normalize_exclusions(excluded)
    if not excluded_set:
        return False
    if relative_path in excluded_set:
        return True
    return any(parent in excluded_set for parent in parent_paths(relative_path))


class SyncPlanner:
    """Builds ordered action lists for push and pull runs.

    Planning never transfers file content. The only side effects are the
    content-hash queries of a push and the creation of missing local
    directories during a pull.
    """

    def __init__(self, hash_oracle: Optional[RemoteHashOracle] = None):
        """Initialize planner.

        Args:
            hash_oracle: Remote hash oracle (required for push planning)
        """
        self.hash_oracle = hash_oracle

    # =========================
    # Push
    # =========================

    def plan_push(
        self,
        entries: list[LocalEntry],
        ignore_filter: Optional[IgnoreFilter] = None,
        excluded: Iterable[str] = (),
        remote_listing: Optional[list[RemoteEntry]] = None,
    ) -> list[SyncDecision]:
        """Plan an upload-direction sync.

        Args:
            entries: Result of scanning the local root
            ignore_filter: Exclusion rules
            excluded: Explicitly excluded relative paths or directories
            remote_listing: Full site listing; when given, site entries
                missing locally are planned for deletion (prune)

        Returns:
            Ordered decisions: prune deletes first, then one UPLOAD or
            SKIP_EXISTS per candidate file in scan order
        """
        if self.hash_oracle is None:
            raise ValueError("A remote hash oracle is required for push planning")

        excluded = list(excluded)
        decisions: list[SyncDecision] = []

        if remote_listing is not None:
            decisions.extend(self._plan_prune(entries, remote_listing))

        for entry in self.filter_push_candidates(entries, ignore_filter, excluded):
            decisions.append(self._plan_file_push(entry))

        return decisions

    def filter_push_candidates(
        self,
        entries: list[LocalEntry],
        ignore_filter: Optional[IgnoreFilter] = None,
        excluded: Iterable[str] = (),
    ) -> list[LocalEntry]:
        """Drop directories, ignored entries and explicit exclusions."""
        excluded = normalize_exclusions(excluded)
        candidates = []
        for entry in entries:
            if entry.is_dir:
                continue
            if ignore_filter is not None and ignore_filter.excludes(
                entry.relative_path
            ):
                continue
            if is_path_excluded(entry.relative_path, excluded):
                logger.debug(f"Excluded by option: {entry.relative_path}")
                continue
            candidates.append(entry)
        return candidates

    def _plan_file_push(self, entry: LocalEntry) -> SyncDecision:
        assert self.hash_oracle is not None
        try:
            sha1 = calculate_sha1(entry.path)
        except OSError as e:
            # The upload reports the read error for this file
            logger.warning(f"Cannot hash {entry.path}: {e}")
            return SyncDecision(
                action=SyncAction.UPLOAD,
                relative_path=entry.relative_path,
                local_path=entry.path,
                reason="Local file could not be hashed",
            )

        if self.hash_oracle.matches(entry.relative_path, sha1):
            return SyncDecision(
                action=SyncAction.SKIP_EXISTS,
                relative_path=entry.relative_path,
                local_path=entry.path,
                reason="Remote content is identical",
            )
        return SyncDecision(
            action=SyncAction.UPLOAD,
            relative_path=entry.relative_path,
            local_path=entry.path,
            reason="Remote content differs or is missing",
        )

    def _plan_prune(
        self, entries: list[LocalEntry], remote_listing: list[RemoteEntry]
    ) -> list[SyncDecision]:
        """Plan deletes for site entries that no longer exist locally.

        Presence is judged against every scanned entry, ignore rules not
        applied, so nothing that exists on disk is ever deleted remotely.
        A delete is dropped when any ancestor directory is deleted too.
        """
        local_paths = {entry.relative_path for entry in entries}
        candidates = [
            remote for remote in remote_listing if remote.path not in local_paths
        ]
        deleted_dirs = {remote.path for remote in candidates if remote.is_dir}

        decisions = []
        for remote in candidates:
            if any(parent in deleted_dirs for parent in parent_paths(remote.path)):
                logger.debug(f"Covered by directory delete: {remote.path}")
                continue
            decisions.append(
                SyncDecision(
                    action=SyncAction.DELETE,
                    relative_path=remote.path,
                    reason="Missing locally",
                    is_dir=remote.is_dir,
                )
            )
        return decisions

    # =========================
    # Pull
    # =========================

    def plan_pull(
        self,
        remote_entries: list[RemoteEntry],
        checkpoint: Optional[Checkpoint],
        local_root: Path,
        make_directory: Optional[Callable[[str], None]] = None,
    ) -> list[SyncDecision]:
        """Plan a download-direction sync.

        Directories are created on the spot through ``make_directory``; files
        become DOWNLOAD or SKIP_CURRENT decisions.

        Args:
            remote_entries: Full site listing
            checkpoint: Checkpoint of the previous pull, if any
            local_root: Directory receiving the files
            make_directory: Callback creating a local directory from its
                relative path (defaults to an idempotent mkdir)

        Returns:
            Ordered decisions in listing order
        """
        if make_directory is None:
            make_directory = self._directory_maker(local_root)

        checkpoint_valid = checkpoint is not None and checkpoint.is_valid_for(
            local_root
        )
        if checkpoint is not None and not checkpoint_valid:
            logger.debug(
                f"Checkpoint root {checkpoint.local_root} does not match "
                f"{local_root}, ignoring it"
            )

        decisions: list[SyncDecision] = []
        for remote in remote_entries:
            if remote.is_dir:
                if is_safe_relative_path(remote.path):
                    make_directory(remote.path)
                else:
                    logger.warning(f"Refusing unsafe remote directory {remote.path}")
                continue

            local_path = local_root / remote.path
            if checkpoint_valid and self._is_current(remote, checkpoint, local_path):
                decisions.append(
                    SyncDecision(
                        action=SyncAction.SKIP_CURRENT,
                        relative_path=remote.path,
                        local_path=local_path,
                        reason="Not updated since last pull",
                    )
                )
            else:
                decisions.append(
                    SyncDecision(
                        action=SyncAction.DOWNLOAD,
                        relative_path=remote.path,
                        local_path=local_path,
                        reason="New or updated remote file",
                    )
                )
        return decisions

    @staticmethod
    def _is_current(
        remote: RemoteEntry, checkpoint: Optional[Checkpoint], local_path: Path
    ) -> bool:
        # Remote clock on both sides of the comparison; equal counts as current
        if checkpoint is None:
            return False
        updated = remote.updated
        if updated is None:
            return False
        return updated <= checkpoint.last_pull and local_path.exists()

    @staticmethod
    def _directory_maker(local_root: Path) -> Callable[[str], None]:
        def make_directory(relative_path: str) -> None:
            try:
                (local_root / relative_path).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Cannot create directory {relative_path}: {e}")

        return make_directory
