"""wpsync - Deploy WordPress plugins, themes and web projects over SSH."""

from .config import DeployConfig, load_config
from .exceptions import (
    ArchiveCreationFailed,
    ArchiveWriterError,
    BackupError,
    ConfigurationError,
    RemoteEraseCommandFailed,
    RemoteEraseFailed,
    RemoteError,
    RemoteUnreachable,
    SyncCancelled,
    TransferError,
    TransferFatalFailure,
    TransportCommandError,
    WpSyncError,
)
from .orchestrator import Deployer, DeployResult, RunState
from .target import ProjectKind, RunOptions, SyncTarget

__all__ = [
    "Deployer",
    "DeployResult",
    "RunState",
    "DeployConfig",
    "load_config",
    "ProjectKind",
    "RunOptions",
    "SyncTarget",
    "WpSyncError",
    "ConfigurationError",
    "BackupError",
    "ArchiveWriterError",
    "ArchiveCreationFailed",
    "RemoteError",
    "RemoteUnreachable",
    "TransportCommandError",
    "RemoteEraseFailed",
    "RemoteEraseCommandFailed",
    "TransferError",
    "TransferFatalFailure",
    "SyncCancelled",
]
