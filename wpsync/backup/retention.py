"""Retention policy for backup archives."""

import logging
import re
import time
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class RetentionPolicy:
    """How many and how old archives may be kept. Zero means unlimited."""

    max_archives_per_version: int = 0
    max_age_days: int = 0

    @property
    def enabled(self) -> bool:
        return self.max_archives_per_version > 0 or self.max_age_days > 0


@dataclass
class ArchiveFile:
    """An existing archive found in the backup directory."""

    path: Path
    version: str
    mtime: float


def archive_pattern(project_name: str, extension: str = "zip") -> "re.Pattern[str]":
    """Regex matching archive file names of a project.

    The version token is captured in the ``version`` group.
    """
    return re.compile(
        rf"^{re.escape(project_name)}_v(?P<version>\S*)"
        rf"_\d{{4}}-\d{{2}}-\d{{2}}_\d{{2}}\.\d{{2}}\.\d{{2}}"
        rf"\.{re.escape(extension)}$"
    )


def find_archives(
    backup_dir: Path, project_name: str, extension: str = "zip"
) -> list[ArchiveFile]:
    """List the archives of a project in a backup directory.

    Args:
        backup_dir: Directory holding the archives
        project_name: Project the archives belong to
        extension: Archive file extension

    Returns:
        List of ArchiveFile objects, sorted by path
    """
    if not backup_dir.is_dir():
        return []

    pattern = archive_pattern(project_name, extension)
    archives: list[ArchiveFile] = []
    for path in sorted(backup_dir.iterdir()):
        match = pattern.match(path.name)
        if match is None or not path.is_file():
            continue
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.warning(f"Cannot stat archive {path}: {e}")
            continue
        archives.append(ArchiveFile(path=path, version=match["version"], mtime=mtime))
    return archives


def select_for_pruning(
    archives: list[ArchiveFile],
    policy: RetentionPolicy,
    keep: Optional[Path] = None,
    now: Optional[float] = None,
) -> list[ArchiveFile]:
    """Select the archives a retention policy removes.

    Both rules apply independently: an archive goes when its version group
    exceeds ``max_archives_per_version`` and it is among the oldest, or when
    it is older than ``max_age_days``. ``keep`` is never selected.

    Args:
        archives: Existing archives
        policy: Retention policy
        keep: Archive that must survive (the one just created)
        now: Current time (defaults to ``time.time()``)

    Returns:
        Archives to delete, sorted by (mtime, path)
    """
    if not policy.enabled:
        return []
    if now is None:
        now = time.time()

    keep_resolved = keep.resolve() if keep is not None else None
    selected: dict[Path, ArchiveFile] = {}

    if policy.max_archives_per_version > 0:
        groups: dict[str, list[ArchiveFile]] = defaultdict(list)
        for archive in archives:
            groups[archive.version].append(archive)
        for version, group in groups.items():
            excess = len(group) - policy.max_archives_per_version
            if excess <= 0:
                continue
            group.sort(key=lambda a: (a.mtime, str(a.path)))
            candidates = [a for a in group if a.path.resolve() != keep_resolved]
            for archive in candidates[:excess]:
                selected[archive.path] = archive
            logger.debug(
                f"Version '{version}': {len(group)} archive(s), "
                f"limit {policy.max_archives_per_version}"
            )

    if policy.max_age_days > 0:
        cutoff = now - policy.max_age_days * SECONDS_PER_DAY
        for archive in archives:
            if archive.mtime < cutoff and archive.path.resolve() != keep_resolved:
                selected[archive.path] = archive

    return sorted(selected.values(), key=lambda a: (a.mtime, str(a.path)))


def prune_archives(
    backup_dir: Path,
    project_name: str,
    policy: RetentionPolicy,
    keep: Optional[Path] = None,
    now: Optional[float] = None,
    extension: str = "zip",
) -> list[Path]:
    """Delete archives according to a retention policy.

    Args:
        backup_dir: Directory holding the archives
        project_name: Project the archives belong to
        policy: Retention policy
        keep: Archive that must survive (the one just created)
        now: Current time (defaults to ``time.time()``)
        extension: Archive file extension

    Returns:
        Paths of deleted archives
    """
    if not policy.enabled:
        return []

    archives = find_archives(backup_dir, project_name, extension)
    deleted: list[Path] = []
    for archive in select_for_pruning(archives, policy, keep=keep, now=now):
        try:
            archive.path.unlink()
        except OSError as e:
            logger.warning(f"Cannot delete old backup {archive.path}: {e}")
            continue
        logger.debug(f"Deleted old backup {archive.path.name}")
        deleted.append(archive.path)
    return deleted
