"""Archive writers used by the backup subsystem."""

import logging
import os
import zipfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..exceptions import ArchiveWriterError
from ..sync.ignore import ExclusionSet

logger = logging.getLogger(__name__)


@runtime_checkable
class ArchiveWriter(Protocol):
    """Creates a compressed archive of a directory tree."""

    extension: str
    """File extension of produced archives, without the dot"""

    def write(
        self, source_root: Path, archive_path: Path, excludes: ExclusionSet
    ) -> int:
        """Archive ``source_root`` into ``archive_path``.

        Args:
            source_root: Directory to archive
            archive_path: Destination file
            excludes: Paths to leave out

        Returns:
            Number of files written

        Raises:
            ArchiveWriterError: If the archive could not be written
        """
        ...


class ZipArchiveWriter:
    """Writes deflate-compressed zip archives.

    Entries are stored below a top-level folder named after the source
    directory, so extracting an archive recreates the project folder.
    """

    extension = "zip"

    def __init__(self, compresslevel: int = 6):
        self.compresslevel = compresslevel

    def write(
        self, source_root: Path, archive_path: Path, excludes: ExclusionSet
    ) -> int:
        prefix = source_root.name
        count = 0
        try:
            with zipfile.ZipFile(
                archive_path,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compresslevel,
            ) as zf:
                for dirpath, dirnames, filenames in os.walk(source_root):
                    current = Path(dirpath)
                    rel_dir = current.relative_to(source_root).as_posix()
                    rel_dir = "" if rel_dir == "." else rel_dir

                    # Prune excluded directories in place
                    dirnames[:] = sorted(
                        d
                        for d in dirnames
                        if not excludes.is_excluded(_join(rel_dir, d), is_dir=True)
                    )
                    for name in sorted(filenames):
                        rel_path = _join(rel_dir, name)
                        file_path = current / name
                        if file_path.resolve() == archive_path.resolve():
                            continue
                        if excludes.is_excluded(rel_path):
                            continue
                        # Only regular files are archived
                        if not file_path.is_file():
                            continue
                        zf.write(file_path, f"{prefix}/{rel_path}")
                        count += 1
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ArchiveWriterError(f"Cannot write {archive_path}: {e}") from e

        logger.debug(f"Wrote {count} file(s) to {archive_path}")
        return count


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name
