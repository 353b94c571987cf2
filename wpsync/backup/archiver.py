"""Pre-deployment backups of the project tree."""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..exceptions import ArchiveCreationFailed, ArchiveWriterError
from ..sync.ignore import ExclusionSet, RuleSource, self_exclusion_for
from .retention import RetentionPolicy, prune_archives
from .writer import ArchiveWriter, ZipArchiveWriter

logger = logging.getLogger(__name__)

# "Version: 1.2.3" header of a plugin main file or theme stylesheet
VERSION_RE = re.compile(r"^[\s*#/]*Version:\s*(?P<version>[\w.+-]+)", re.IGNORECASE)

# Only the file header is searched
VERSION_SCAN_BYTES = 8192


@dataclass(frozen=True)
class BackupArchive:
    """A backup archive written by the archiver."""

    project_name: str
    version: str
    created_at: datetime
    file_path: Path
    size_bytes: int
    pruned: tuple[Path, ...] = ()
    """Old archives removed by the retention policy"""


def extract_version(source_root: Path, project_name: str) -> str:
    """Read the project version from its main descriptor file.

    Looks for a ``Version:`` header in ``<project_name>.php`` (plugins) and
    then in ``style.css`` (themes).

    Args:
        source_root: Project root
        project_name: Project name

    Returns:
        Version string, or "" if none was found
    """
    for candidate in (f"{project_name}.php", "style.css"):
        path = source_root / candidate
        if not path.is_file():
            continue
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                header = f.read(VERSION_SCAN_BYTES)
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            continue
        for line in header.splitlines():
            match = VERSION_RE.match(line)
            if match:
                version = match["version"]
                logger.debug(f"Found version {version!r} in {path.name}")
                return version
    logger.debug(f"No version header found for {project_name}")
    return ""


def archive_filename(
    project_name: str, version: str, created_at: datetime, extension: str = "zip"
) -> str:
    """Build the archive file name.

    Examples:
        >>> archive_filename("my-plugin", "1.0", datetime(2025, 1, 31, 14, 5, 9))
        'my-plugin_v1.0_2025-01-31_14.05.09.zip'
    """
    clean_version = re.sub(r"[^\w.+-]", "", version)
    timestamp = created_at.strftime("%Y-%m-%d_%H.%M.%S")
    return f"{project_name}_v{clean_version}_{timestamp}.{extension}"


class Archiver:
    """Creates versioned backups and applies the retention policy."""

    def __init__(self, writer: Optional[ArchiveWriter] = None):
        """Initialize the archiver.

        Args:
            writer: Archive writer (zip by default)
        """
        self.writer = writer or ZipArchiveWriter()

    def create_backup(
        self,
        project_name: str,
        source_root: Path,
        backup_dir: Path,
        excludes: Iterable[str],
        retention: RetentionPolicy,
        now: Optional[datetime] = None,
    ) -> BackupArchive:
        """Archive the project tree and prune old archives.

        Args:
            project_name: Project name (archive prefix)
            source_root: Directory to archive
            backup_dir: Directory for archives (created if missing)
            excludes: Backup exclusion patterns
            retention: Retention policy applied after writing
            now: Creation time (defaults to now)

        Returns:
            BackupArchive

        Raises:
            ArchiveCreationFailed: If the archive could not be written
        """
        created_at = now or datetime.now()
        version = extract_version(source_root, project_name)
        filename = archive_filename(
            project_name, version, created_at, self.writer.extension
        )

        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveCreationFailed(
                f"Cannot create backup directory {backup_dir}: {e}"
            ) from e

        archive_path = backup_dir / filename

        exclusion_set = ExclusionSet.from_patterns(excludes, RuleSource.BACKUP)
        nested = self_exclusion_for(backup_dir, source_root)
        if nested is not None:
            exclusion_set.extend([nested], RuleSource.SELF)

        logger.debug(f"Creating backup {archive_path}")
        try:
            self.writer.write(source_root, archive_path, exclusion_set)
        except (ArchiveWriterError, OSError) as e:
            archive_path.unlink(missing_ok=True)
            raise ArchiveCreationFailed(f"Backup of {project_name} failed: {e}") from e

        if not archive_path.is_file():
            raise ArchiveCreationFailed(
                f"Archive writer produced no file: {archive_path}"
            )

        deleted = prune_archives(
            backup_dir,
            project_name,
            retention,
            keep=archive_path,
            extension=self.writer.extension,
        )
        if deleted:
            logger.info(f"Removed {len(deleted)} old backup(s)")

        return BackupArchive(
            project_name=project_name,
            version=version,
            created_at=created_at,
            file_path=archive_path,
            size_bytes=archive_path.stat().st_size,
            pruned=tuple(deleted),
        )
