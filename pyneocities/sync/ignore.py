"""Exclusion rules for push operations.

Rules are shell globs matched against the whole relative path of an entry.
They come from the command line or from the ``.gitignore`` file at the root
of the pushed directory.

Examples:
    >>> rules = IgnoreFilter.load(["*.log", "build/"])
    >>> rules.excludes("debug.log")
    True
    >>> rules.excludes("build/site/index.html")
    True
    >>> rules.excludes("index.html")
    False
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Optional

from ..exceptions import IgnoreFileError
from ..utils import normalize_relative_path

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".gitignore"


@dataclass(frozen=True)
class IgnoreRule:
    """A single exclusion pattern."""

    pattern: str
    """Normalized glob pattern (no leading or trailing slash)"""

    directory: bool = False
    """Whether the rule names a directory and covers everything below it"""

    source: str = "cli"
    """Where the rule came from (for debug output)"""

    def matches(self, relative_path: str) -> bool:
        """Check whether this rule matches a normalized relative path."""
        if fnmatchcase(relative_path, self.pattern):
            return True
        if self.directory:
            return fnmatchcase(relative_path, f"{self.pattern}/**")
        return False


def parse_pattern(
    raw: str, base_path: Optional[Path] = None, source: str = "cli"
) -> Optional[IgnoreRule]:
    """Turn one pattern line into an IgnoreRule.

    Args:
        raw: Pattern as written by the user
        base_path: Root used to detect patterns naming existing directories
        source: Origin of the pattern

    Returns:
        IgnoreRule, or None for blank lines, comments and negations
    """
    line = raw.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("!"):
        logger.debug(f"Negated pattern not supported, skipping: {line}")
        return None

    normalized = line.replace("\\", "/")
    directory = normalized.endswith("/")
    pattern = normalize_relative_path(normalized)
    if not pattern:
        return None

    if not directory and base_path is not None and (base_path / pattern).is_dir():
        directory = True

    return IgnoreRule(pattern=pattern, directory=directory, source=source)


class IgnoreFilter:
    """Immutable set of exclusion rules.

    Any matching rule excludes a path; rule order only matters for debug
    output.
    """

    def __init__(self, rules: Iterable[IgnoreRule] = ()):
        self._rules: tuple[IgnoreRule, ...] = tuple(rules)

    @classmethod
    def load(
        cls,
        patterns: Iterable[str],
        base_path: Optional[Path] = None,
        source: str = "cli",
    ) -> "IgnoreFilter":
        """Compile an ordered sequence of patterns.

        Args:
            patterns: Glob patterns
            base_path: Local root; patterns naming a directory under it
                also match everything beneath that directory
            source: Origin of the patterns

        Returns:
            IgnoreFilter instance
        """
        rules = []
        for raw in patterns:
            rule = parse_pattern(raw, base_path=base_path, source=source)
            if rule is not None:
                rules.append(rule)
        return cls(rules)

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def merge(self, other: "IgnoreFilter") -> "IgnoreFilter":
        """Return a filter holding the rules of both filters."""
        return IgnoreFilter(self._rules + other.rules)

    def excludes(self, relative_path: str) -> bool:
        """Check whether a relative path is excluded by any rule."""
        path = normalize_relative_path(relative_path)
        for rule in self._rules:
            if rule.matches(path):
                logger.debug(
                    "Ignoring %s (pattern %r from %s)", path, rule.pattern, rule.source
                )
                return True
        return False


def load_ignore_file(root: Path, file_name: str = IGNORE_FILE_NAME) -> IgnoreFilter:
    """Load the ignore file at the root of a directory.

    Args:
        root: Directory containing the ignore file
        file_name: Name of the ignore file

    Returns:
        IgnoreFilter; empty when the file does not exist

    Raises:
        IgnoreFileError: If the file exists but cannot be read
    """
    ignore_file = root / file_name
    if not ignore_file.is_file():
        return IgnoreFilter()

    try:
        lines = ignore_file.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise IgnoreFileError(f"Cannot read {ignore_file}: {e}") from e

    ignore_filter = IgnoreFilter.load(lines, base_path=root, source=file_name)
    logger.debug(f"Loaded {len(ignore_filter)} rule(s) from {ignore_file}")
    return ignore_filter
