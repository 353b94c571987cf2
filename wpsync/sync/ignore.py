"""Exclusion rules for deployment and backup.

Rules use a gitignore-like syntax:

- ``name`` matches a file or directory with that base name at any depth
- ``dir/`` (trailing slash) only matches directories
- ``path/to/file`` or ``/file`` (contains a slash) is anchored to the root
- ``*`` and ``?`` match within a single path segment, ``**`` across segments

A directory match excludes the whole subtree below it.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import ConfigurationError
from ..utils import glob_to_regex

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".wpsyncignore"

# Files and folders never deployed (development artifacts)
DEFAULT_EXCLUDES: tuple[str, ...] = (
    ".git/",
    ".gitignore",
    "docs/",
    "*.zip",
    "*.md",
    "*.log",
    "node_modules/",
    "vendor/",
    "tests/",
)

# Operating system metadata
OS_ARTIFACT_EXCLUDES: tuple[str, ...] = (
    ".DS_Store",
    "._*",
    ".AppleDouble/",
    ".LSOverride",
    ".Spotlight-V100/",
    ".Trashes/",
    ".fseventsd/",
    ".TemporaryItems/",
    ".DocumentRevisions-V100/",
    ".com.apple.timemachine.donotpresent",
    "Backups.backupdb/",
    "Thumbs.db",
    "ehthumbs.db",
    "desktop.ini",
    "$RECYCLE.BIN/",
)

# The tool's own control files; always excluded
SELF_EXCLUDES: tuple[str, ...] = (
    "/wpsync.json",
    "/" + IGNORE_FILE_NAME,
    "sync-project.sh",
    "sync-project.sh.*",
    "*.zip",
)


class RuleSource(str, Enum):
    """Where an exclusion rule came from."""

    BUILTIN = "builtin"
    OS = "os"
    IGNORE_FILE = "ignore-file"
    SELF = "self"
    BACKUP = "backup"


@dataclass(frozen=True)
class IgnoreRule:
    """A single exclusion pattern."""

    pattern: str
    """Pattern as written (normalized)"""

    source: RuleSource = RuleSource.BUILTIN
    """Provenance of the rule"""

    @property
    def dir_only(self) -> bool:
        """Whether the rule only matches directories."""
        return self.pattern.endswith("/")

    @property
    def anchored(self) -> bool:
        """Whether the rule is relative to the root instead of any depth."""
        return "/" in self.pattern.rstrip("/")

    @property
    def _body(self) -> str:
        return self.pattern.rstrip("/").lstrip("/")

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check whether this rule matches a path.

        Only the path itself is tested; parent directories are handled by
        :meth:`ExclusionSet.is_excluded`.

        Args:
            relative_path: Path relative to the root, forward slashes
            is_dir: Whether the path is a directory

        Returns:
            True if the rule matches
        """
        if self.dir_only and not is_dir:
            return False
        regex = glob_to_regex(self._body)
        if self.anchored:
            return regex.match(relative_path) is not None
        name = relative_path.rsplit("/", 1)[-1]
        return regex.match(name) is not None


def normalize_pattern(line: str) -> Optional[str]:
    """Normalize a line from an ignore file.

    Returns:
        The pattern, or None for blank lines and comments
    """
    pattern = line.strip()
    if not pattern or pattern.startswith("#"):
        return None
    pattern = pattern.replace("\\", "/")
    while "//" in pattern:
        pattern = pattern.replace("//", "/")
    if pattern in ("/", ""):
        return None
    return pattern


class ExclusionSet:
    """Ordered union of exclusion rules.

    Adding a pattern that is already present is a no-op; rules never
    override each other.

    Examples:
        >>> excludes = ExclusionSet.from_patterns(["*.log", "cache/"])
        >>> excludes.is_excluded("logs/debug.log")
        True
        >>> excludes.is_excluded("cache/data.bin")
        True
    """

    def __init__(self, rules: Iterable[IgnoreRule] = ()):
        self._rules: list[IgnoreRule] = []
        self._patterns: set[str] = set()
        for rule in rules:
            self.add(rule)

    @classmethod
    def from_patterns(
        cls, patterns: Iterable[str], source: RuleSource = RuleSource.BUILTIN
    ) -> "ExclusionSet":
        """Create a set from plain pattern strings."""
        result = cls()
        result.extend(patterns, source)
        return result

    def add(self, rule: IgnoreRule) -> bool:
        """Add a rule.

        Returns:
            True if the rule was new, False if the pattern was already present
        """
        if rule.pattern in self._patterns:
            return False
        self._patterns.add(rule.pattern)
        self._rules.append(rule)
        return True

    def extend(self, patterns: Iterable[str], source: RuleSource) -> None:
        """Add plain patterns with the given provenance."""
        for raw in patterns:
            pattern = normalize_pattern(raw)
            if pattern is not None:
                self.add(IgnoreRule(pattern, source))

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        return tuple(self._rules)

    @property
    def patterns(self) -> list[str]:
        return [rule.pattern for rule in self._rules]

    def __iter__(self) -> Iterator[IgnoreRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._patterns

    def by_source(self, source: RuleSource) -> list[IgnoreRule]:
        """Rules with a given provenance."""
        return [rule for rule in self._rules if rule.source == source]

    def matching_rule(
        self, relative_path: str, is_dir: bool = False
    ) -> Optional[IgnoreRule]:
        """Return the first rule matching the path itself, if any."""
        for rule in self._rules:
            if rule.matches(relative_path, is_dir=is_dir):
                return rule
        return None

    def is_excluded(self, relative_path: str, is_dir: bool = False) -> bool:
        """Check whether a path or any of its parent directories is excluded.

        Args:
            relative_path: Path relative to the root, forward slashes
            is_dir: Whether the path is a directory

        Returns:
            True if the path must not be transferred
        """
        parts = relative_path.strip("/").split("/")
        for idx in range(1, len(parts)):
            parent = "/".join(parts[:idx])
            if self.matching_rule(parent, is_dir=True) is not None:
                return True
        return self.matching_rule("/".join(parts), is_dir=is_dir) is not None


def load_ignore_file(path: Path) -> list[str]:
    """Read patterns from an ignore file.

    Args:
        path: Path to the ignore file

    Returns:
        List of patterns (empty if the file does not exist)

    Raises:
        ConfigurationError: If the file exists but cannot be read
    """
    if not path.is_file():
        logger.debug(f"No ignore file at {path}")
        return []

    try:
        with open(path, encoding="utf-8") as f:
            lines = f.readlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read ignore file {path}: {e}") from e

    patterns = [p for p in (normalize_pattern(line) for line in lines) if p]
    logger.debug(f"Loaded {len(patterns)} pattern(s) from {path}")
    return patterns


def build_exclusion_set(
    ignore_file: Optional[Path] = None,
    builtin: Iterable[str] = DEFAULT_EXCLUDES,
    os_artifacts: Iterable[str] = OS_ARTIFACT_EXCLUDES,
    extra_self: Iterable[str] = (),
) -> ExclusionSet:
    """Build the exclusion set used for a deployment.

    The result is the union of the built-in rules, the OS artifact rules,
    the project's ignore file and the tool's own control files.

    Args:
        ignore_file: Optional path to the project's ignore file
        builtin: Built-in development exclusions
        os_artifacts: Operating system metadata exclusions
        extra_self: Additional self exclusions (e.g. the backup directory)

    Returns:
        ExclusionSet
    """
    excludes = ExclusionSet()
    excludes.extend(builtin, RuleSource.BUILTIN)
    excludes.extend(os_artifacts, RuleSource.OS)
    if ignore_file is not None:
        excludes.extend(load_ignore_file(ignore_file), RuleSource.IGNORE_FILE)
    excludes.extend(SELF_EXCLUDES, RuleSource.SELF)
    excludes.extend(extra_self, RuleSource.SELF)
    logger.debug(f"Resolved {len(excludes)} exclusion rule(s)")
    return excludes


def self_exclusion_for(
    path: Path, root: Path, directory: bool = True
) -> Optional[str]:
    """Anchored pattern for ``path`` if it lies inside ``root``.

    Args:
        path: File or directory to exclude
        root: Project root
        directory: Emit a directory-only rule (trailing slash)

    Examples:
        >>> self_exclusion_for(Path("/p/backups"), Path("/p"))
        '/backups/'
        >>> self_exclusion_for(Path("/p/deploy.json"), Path("/p"), directory=False)
        '/deploy.json'
    """
    try:
        relative = path.resolve().relative_to(root.resolve())
    except ValueError:
        return None
    if not relative.parts:
        return None
    pattern = f"/{relative.as_posix()}"
    return f"{pattern}/" if directory else pattern
