"""Sync operations wrapper around the bulk transfer interface."""

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from .comparator import ChangeKind, ChangeRecord

if TYPE_CHECKING:
    from ..transport import BulkTransfer

logger = logging.getLogger(__name__)


class SyncOperations:
    """Applies change records to a remote directory."""

    def __init__(self, transport: "BulkTransfer", remote_root: str):
        """Initialize sync operations.

        Args:
            transport: Bulk transfer implementation
            remote_root: Absolute remote directory the tree is mirrored to
        """
        self.transport = transport
        self.remote_root = remote_root

    def remote_path(self, relative_path: str) -> str:
        """Absolute remote path for a relative path."""
        return str(PurePosixPath(self.remote_root) / relative_path)

    def apply(self, record: ChangeRecord) -> None:
        """Execute the remote operation for a change record.

        Args:
            record: Change record with a CREATED, UPDATED or DELETED
                classification

        Raises:
            RemoteUnreachable: If the host cannot be reached
            TransportCommandError: If the remote operation failed
            OSError: If the local source file cannot be read
        """
        if record.classification == ChangeKind.DELETED:
            self.delete_remote(record)
        elif record.classification in (ChangeKind.CREATED, ChangeKind.UPDATED):
            # Replace a remote entry of the other type first
            if (
                record.remote_file is not None
                and record.local_file is not None
                and record.remote_file.is_dir != record.local_file.is_dir
            ):
                self.transport.remove(
                    self.remote_path(record.relative_path), recursive=True
                )
            if record.is_dir:
                self.make_dir(record)
            else:
                self.upload_file(record)

    def upload_file(self, record: ChangeRecord) -> None:
        """Upload the local file of a record."""
        local_file = record.local_file
        if local_file is None:
            return
        logger.debug(f"Uploading {record.relative_path} ({local_file.size} bytes)")
        self.transport.put_file(
            local_file.path,
            self.remote_path(record.relative_path),
            local_file.mtime,
        )

    def make_dir(self, record: ChangeRecord) -> None:
        """Create the remote directory of a record."""
        logger.debug(f"Creating directory {record.relative_path}")
        self.transport.make_dir(self.remote_path(record.relative_path))

    def delete_remote(self, record: ChangeRecord) -> None:
        """Delete the remote file or directory tree of a record."""
        logger.debug(f"Deleting {record.relative_path}")
        self.transport.remove(
            self.remote_path(record.relative_path), recursive=record.is_dir
        )
