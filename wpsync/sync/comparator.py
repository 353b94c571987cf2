"""File comparison logic for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ignore import ExclusionSet
from .scanner import LocalFile, RemoteFile


class ChangeKind(str, Enum):
    """Classification of a path in a mirror plan."""

    CREATED = "created"
    """Path does not exist remotely and will be created"""

    UPDATED = "updated"
    """Path exists remotely but differs (size or modification time)"""

    DELETED = "deleted"
    """Path exists remotely only, or is excluded, and will be removed"""

    UNCHANGED = "unchanged"
    """Path is identical on both sides"""

    @property
    def is_change(self) -> bool:
        """Whether this classification requires a remote operation."""
        return self != ChangeKind.UNCHANGED


@dataclass
class ChangeRecord:
    """Represents a decision about one file or directory."""

    relative_path: str
    """Relative path of the file"""

    classification: ChangeKind
    """What happens to the path"""

    size_bytes: int
    """Size of the file that is (or was) transferred or removed"""

    is_dir: bool = False
    """Whether the path is a directory"""

    reason: str = ""
    """Human-readable reason for this decision"""

    local_file: Optional[LocalFile] = None
    """Local file (if exists)"""

    remote_file: Optional[RemoteFile] = None
    """Remote file (if exists)"""


class FileComparator:
    """Compares the local and remote trees of a one-way mirror.

    The local tree is authoritative: every path in the result ends up on the
    remote side exactly when it exists locally and is not excluded.
    """

    def __init__(
        self,
        excludes: Optional[ExclusionSet] = None,
        modify_window: float = 0,
    ):
        """Initialize file comparator.

        Args:
            excludes: Exclusion rules; remote paths matching them are deleted
            modify_window: Tolerance in seconds when comparing mtimes
        """
        self.excludes = excludes if excludes is not None else ExclusionSet()
        self.modify_window = modify_window

    def compare_files(
        self,
        local_files: dict[str, LocalFile],
        remote_files: dict[str, RemoteFile],
    ) -> list[ChangeRecord]:
        """Compare local and remote files and classify every path.

        Args:
            local_files: Dictionary mapping relative_path to LocalFile
            remote_files: Dictionary mapping relative_path to RemoteFile

        Returns:
            List of ChangeRecord objects in lexical path order
        """
        records: list[ChangeRecord] = []

        # Scanners already prune excluded entries; excluded local paths are
        # treated as absent so their remote copies are deleted
        local_files = {
            path: f
            for path, f in local_files.items()
            if not self.excludes.is_excluded(path, is_dir=f.is_dir)
        }
        all_paths = set(local_files.keys()) | set(remote_files.keys())

        for path in sorted(all_paths):
            local_file = local_files.get(path)
            remote_file = remote_files.get(path)
            records.append(self._compare_single_file(path, local_file, remote_file))

        return records

    def _compare_single_file(
        self,
        path: str,
        local_file: Optional[LocalFile],
        remote_file: Optional[RemoteFile],
    ) -> ChangeRecord:
        """Compare a single path and determine its classification."""
        if local_file and remote_file:
            return self._compare_existing_files(path, local_file, remote_file)

        if local_file:
            return ChangeRecord(
                relative_path=path,
                classification=ChangeKind.CREATED,
                size_bytes=local_file.size,
                is_dir=local_file.is_dir,
                reason="New local directory" if local_file.is_dir else "New local file",
                local_file=local_file,
            )

        if remote_file:
            excluded = self.excludes.is_excluded(path, is_dir=remote_file.is_dir)
            return ChangeRecord(
                relative_path=path,
                classification=ChangeKind.DELETED,
                size_bytes=remote_file.size,
                is_dir=remote_file.is_dir,
                reason="Excluded from deployment" if excluded else "Removed locally",
                remote_file=remote_file,
            )

        # Should never happen
        return ChangeRecord(
            relative_path=path,
            classification=ChangeKind.UNCHANGED,
            size_bytes=0,
            reason="No file found",
        )

    def _compare_existing_files(
        self, path: str, local_file: LocalFile, remote_file: RemoteFile
    ) -> ChangeRecord:
        """Compare paths that exist in both locations."""
        if local_file.is_dir != remote_file.is_dir:
            return ChangeRecord(
                relative_path=path,
                classification=ChangeKind.UPDATED,
                size_bytes=local_file.size,
                is_dir=local_file.is_dir,
                reason="Type changed between file and directory",
                local_file=local_file,
                remote_file=remote_file,
            )

        if local_file.is_dir:
            return ChangeRecord(
                relative_path=path,
                classification=ChangeKind.UNCHANGED,
                size_bytes=0,
                is_dir=True,
                reason="Directory exists",
                local_file=local_file,
                remote_file=remote_file,
            )

        if local_file.size != remote_file.size:
            reason = f"Size differs ({local_file.size} vs {remote_file.size})"
        elif remote_file.mtime is None:
            reason = "Remote mtime unavailable"
        elif self._mtime_differs(local_file.mtime, remote_file.mtime):
            reason = "Modification time differs"
        else:
            return ChangeRecord(
                relative_path=path,
                classification=ChangeKind.UNCHANGED,
                size_bytes=local_file.size,
                reason="Same size and modification time",
                local_file=local_file,
                remote_file=remote_file,
            )

        return ChangeRecord(
            relative_path=path,
            classification=ChangeKind.UPDATED,
            size_bytes=local_file.size,
            reason=reason,
            local_file=local_file,
            remote_file=remote_file,
        )

    def _mtime_differs(self, local_mtime: float, remote_mtime: float) -> bool:
        # Remote timestamps are set with whole-second precision
        return abs(int(local_mtime) - int(remote_mtime)) > self.modify_window
