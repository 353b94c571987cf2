"""Custom exceptions for wpsync."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sync.engine import SyncReport


class WpSyncError(Exception):
    """Base exception for all wpsync errors."""

    pass


class ConfigurationError(WpSyncError):
    """Raised when the deployment configuration is invalid or incomplete."""

    pass


# =============================================================================
# Backup errors
# =============================================================================


class BackupError(WpSyncError):
    """Base exception for backup failures."""

    pass


class ArchiveWriterError(BackupError):
    """Raised by an archive writer when it cannot produce the archive."""

    pass


class ArchiveCreationFailed(BackupError):
    """Raised when a backup archive could not be created.

    Not fatal for a deployment: the sync proceeds and the failure is
    reported as a warning.
    """

    pass


# =============================================================================
# Remote errors
# =============================================================================


class RemoteError(WpSyncError):
    """Base exception for errors talking to the remote host."""

    pass


class RemoteUnreachable(RemoteError):
    """Raised when the remote host cannot be reached or a command timed out."""

    pass


class TransportCommandError(RemoteError):
    """Raised when a remote command ran but exited with a non-zero status."""

    def __init__(self, message: str, returncode: int, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class RemoteEraseFailed(RemoteError):
    """Raised when the destination directory could not be cleaned."""

    pass


class RemoteEraseCommandFailed(RemoteError):
    """A secondary cleanup command failed (reported as a warning)."""

    pass


# =============================================================================
# Transfer errors
# =============================================================================


class TransferError(WpSyncError):
    """Base exception for transfer failures.

    Carries the report of everything completed before the failure.
    """

    def __init__(self, message: str, report: Optional["SyncReport"] = None):
        super().__init__(message)
        self.report = report


class TransferFatalFailure(TransferError):
    """Raised when the transfer cannot continue."""

    pass


class SyncCancelled(TransferError):
    """Raised when a transfer was cancelled by the user."""

    pass
