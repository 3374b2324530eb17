"""Run configuration for push and pull.

Options are built once from the command line and passed down unchanged.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from ..utils import normalize_relative_path


def _as_path(value: Union[str, Path]) -> Path:
    return value if isinstance(value, Path) else Path(value)


@dataclass(frozen=True)
class PushOptions:
    """Settings of one push run."""

    root: Path
    """Local directory to upload"""

    dry_run: bool = False
    """Plan and report without uploading or deleting"""

    prune: bool = False
    """Delete site entries that no longer exist locally"""

    use_gitignore: bool = True
    """Apply the root's .gitignore"""

    excluded: tuple[str, ...] = field(default_factory=tuple)
    """Relative paths or directories excluded on the command line"""

    ignore_patterns: tuple[str, ...] = field(default_factory=tuple)
    """Extra glob patterns to exclude"""

    max_workers: int = 1
    """Parallel transfers (1 keeps the sequential order)"""

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", _as_path(self.root))
        object.__setattr__(
            self,
            "excluded",
            tuple(
                p for p in (normalize_relative_path(e) for e in self.excluded) if p
            ),
        )
        object.__setattr__(self, "ignore_patterns", tuple(self.ignore_patterns))
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


@dataclass(frozen=True)
class PullOptions:
    """Settings of one pull run."""

    root: Path
    """Local directory receiving the site files"""

    sitename: str
    """Site (account) to pull; also keys the checkpoint"""

    quiet: bool = False
    """Only show a spinner and the final summary"""

    max_workers: int = 1
    """Parallel downloads"""

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", _as_path(self.root))
        if not self.sitename:
            raise ValueError("sitename is required for pull")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
