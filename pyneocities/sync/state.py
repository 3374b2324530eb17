"""Pull checkpoint persistence.

A checkpoint remembers when the last pull started and which local directory
it wrote to, so the next pull into the same directory can skip site files
that have not changed since.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


def _resolve_root(path: Union[str, Path]) -> str:
    return str(Path(path).expanduser().resolve())


@dataclass(frozen=True)
class Checkpoint:
    """Outcome of a previous pull."""

    last_pull: datetime
    """Start time of the last pull (timezone-aware)"""

    local_root: str
    """Absolute local directory the pull wrote to"""

    def is_valid_for(self, local_root: Union[str, Path]) -> bool:
        """A checkpoint only applies to the exact root it was taken for."""
        return self.local_root == _resolve_root(local_root)

    def to_dict(self) -> dict:
        """Convert checkpoint to dictionary for JSON serialization."""
        return {
            "last_pull": self.last_pull.isoformat(),
            "local_root": self.local_root,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Checkpoint":
        """Create Checkpoint from dictionary.

        Raises:
            KeyError, ValueError, TypeError: If the data is malformed
        """
        last_pull = datetime.fromisoformat(data["last_pull"])
        if last_pull.tzinfo is None:
            last_pull = last_pull.replace(tzinfo=timezone.utc)
        local_root = data["local_root"]
        if not isinstance(local_root, str) or not local_root:
            raise ValueError("local_root must be a non-empty string")
        return cls(last_pull=last_pull, local_root=local_root)

    @classmethod
    def create(cls, started_at: datetime, local_root: Union[str, Path]) -> "Checkpoint":
        """Build a checkpoint for a pull that started at ``started_at``."""
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        return cls(last_pull=started_at, local_root=_resolve_root(local_root))


class CheckpointStore:
    """Persists one checkpoint per account.

    The state is stored as JSON in the user's config directory, one file per
    account named by a hash of the account name.
    """

    def __init__(self, state_dir: Optional[Path] = None):
        """Initialize checkpoint store.

        Args:
            state_dir: Directory to store state files. Defaults to
                      ~/.config/pyneocities/pull_state/
        """
        if state_dir is None:
            state_dir = Path.home() / ".config" / "pyneocities" / "pull_state"
        self.state_dir = state_dir

    def _get_state_file(self, account: str) -> Path:
        key = hashlib.sha256(account.encode()).hexdigest()[:16]
        return self.state_dir / f"{key}.json"

    def load(self, account: str) -> Optional[Checkpoint]:
        """Load the checkpoint of an account.

        Unreadable or malformed state counts as no checkpoint.

        Args:
            account: Site name the checkpoint belongs to

        Returns:
            Checkpoint if found and valid, None otherwise
        """
        state_file = self._get_state_file(account)

        if not state_file.exists():
            logger.debug(f"No checkpoint found at {state_file}")
            return None

        try:
            with open(state_file, encoding="utf-8") as f:
                data = json.load(f)
            checkpoint = Checkpoint.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable checkpoint {state_file}: {e}")
            return None

        logger.debug(
            f"Loaded checkpoint from {checkpoint.last_pull.isoformat()} "
            f"for {checkpoint.local_root}"
        )
        return checkpoint

    def save(self, account: str, checkpoint: Checkpoint) -> bool:
        """Save the checkpoint of an account, replacing any previous one.

        Args:
            account: Site name the checkpoint belongs to
            checkpoint: Checkpoint to store

        Returns:
            True if the checkpoint was written
        """
        state_file = self._get_state_file(account)
        tmp_file = state_file.with_suffix(".tmp")

        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump({"account": account, **checkpoint.to_dict()}, f, indent=2)
            tmp_file.replace(state_file)
        except OSError as e:
            logger.warning(f"Failed to save checkpoint: {e}")
            return False

        logger.debug(f"Saved checkpoint to {state_file}")
        return True

    def clear(self, account: str) -> bool:
        """Remove the checkpoint of an account.

        Returns:
            True if a checkpoint was removed, False if none existed
        """
        state_file = self._get_state_file(account)

        if state_file.exists():
            state_file.unlink()
            logger.debug(f"Cleared checkpoint at {state_file}")
            return True
        return False
