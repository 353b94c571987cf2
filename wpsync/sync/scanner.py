"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .ignore import ExclusionSet

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file or directory with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes (0 for directories)"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    is_dir: bool = False
    """Whether this entry is a directory"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        is_dir = file_path.is_dir()

        return cls(
            path=file_path,
            relative_path=relative_path,
            size=0 if is_dir else stat.st_size,
            mtime=stat.st_mtime,
            is_dir=is_dir,
        )


@dataclass
class RemoteFile:
    """Represents a file or directory in the remote tree."""

    relative_path: str
    """Path relative to the remote target directory"""

    size: int
    """File size in bytes (0 for directories)"""

    mtime: Optional[float]
    """Last modification time (Unix timestamp), if known"""

    is_dir: bool = False
    """Whether this entry is a directory"""


class DirectoryScanner:
    """Scans a local project tree, honoring an exclusion set.

    Excluded directories are pruned and never descended into.

    Examples:
        >>> scanner = DirectoryScanner(build_exclusion_set())
        >>> files = scanner.scan_local(Path("/projects/my-plugin"))
        >>> # .git/, node_modules/, *.md ... are not part of the result
    """

    def __init__(self, excludes: Optional[ExclusionSet] = None):
        """Initialize directory scanner.

        Args:
            excludes: Exclusion rules to apply (none if omitted)
        """
        self.excludes = excludes if excludes is not None else ExclusionSet()

    def should_ignore(self, path: Path, base_path: Path, is_dir: bool = False) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Path to check
            base_path: Base path for relative path calculation
            is_dir: Whether the path is a directory

        Returns:
            True if path should be ignored
        """
        relative_path = path.relative_to(base_path).as_posix()
        rule = self.excludes.matching_rule(relative_path, is_dir=is_dir)
        if rule is not None:
            logger.debug(
                f"Ignoring {relative_path} ({rule.source.value}: {rule.pattern})"
            )
            return True
        return False

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Directories are returned as entries of their own, before their
        contents. Symlinked directories are not descended into.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths
                (defaults to directory)

        Returns:
            List of LocalFile objects, sorted by relative path
        """
        top_level = base_path is None
        if base_path is None:
            base_path = directory

        files: list[LocalFile] = []

        try:
            for item in sorted(directory.iterdir()):
                is_dir = item.is_dir() and not item.is_symlink()
                if self.should_ignore(item, base_path, is_dir=is_dir):
                    continue

                if is_dir:
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        logger.warning(f"Cannot stat directory {item}: {e}")
                        continue
                    files.extend(self.scan_local(item, base_path))
                elif item.is_file():
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        # Skip files we can't read
                        logger.warning(f"Cannot stat file {item}: {e}")
                        continue
                elif item.is_symlink():
                    logger.debug(f"Skipping dangling or directory symlink: {item}")
        except PermissionError as e:
            # Skip directories we can't read
            logger.warning(f"Permission denied: {e}")

        if top_level:
            files.sort(key=lambda f: f.relative_path)
            logger.debug(f"Scanned {len(files)} local entries in {directory}")
        return files


def parse_remote_listing(output: str) -> list[RemoteFile]:
    """Parse the output of the remote listing command.

    Each line has the form ``<type>\\t<size>\\t<mtime>\\t<relative path>``
    where type is ``f`` for files and ``d`` for directories, as produced by
    ``find DIR -mindepth 1 -printf '%y\\t%s\\t%T@\\t%P\\n'``.

    Lines with other types (symlinks, sockets) or malformed lines are skipped.

    Args:
        output: Command output

    Returns:
        List of RemoteFile objects
    """
    remote_files: list[RemoteFile] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t", 3)
        if len(parts) != 4:
            logger.debug(f"Skipping malformed listing line: {line!r}")
            continue
        kind, size_str, mtime_str, rel_path = parts
        if kind not in ("f", "d"):
            logger.debug(f"Skipping remote entry of type {kind!r}: {rel_path}")
            continue
        try:
            size = int(size_str)
            mtime: Optional[float] = float(mtime_str)
        except ValueError:
            logger.debug(f"Skipping malformed listing line: {line!r}")
            continue
        is_dir = kind == "d"
        remote_files.append(
            RemoteFile(
                relative_path=rel_path,
                size=0 if is_dir else size,
                mtime=mtime,
                is_dir=is_dir,
            )
        )
    return remote_files
