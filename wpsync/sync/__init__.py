"""Sync engine for wpsync - one-way mirroring of a project to a server."""

from .comparator import ChangeKind, ChangeRecord, FileComparator
from .engine import SyncEngine, SyncReport, TransferPolicy
from .eraser import RemoteEraser
from .ignore import (
    DEFAULT_EXCLUDES,
    IGNORE_FILE_NAME,
    OS_ARTIFACT_EXCLUDES,
    SELF_EXCLUDES,
    ExclusionSet,
    IgnoreRule,
    RuleSource,
    build_exclusion_set,
    load_ignore_file,
)
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFile, RemoteFile, parse_remote_listing

__all__ = [
    "SyncEngine",
    "SyncReport",
    "TransferPolicy",
    "SyncOperations",
    "RemoteEraser",
    "DirectoryScanner",
    "FileComparator",
    "ChangeKind",
    "ChangeRecord",
    "LocalFile",
    "RemoteFile",
    "parse_remote_listing",
    "ExclusionSet",
    "IgnoreRule",
    "RuleSource",
    "IGNORE_FILE_NAME",
    "DEFAULT_EXCLUDES",
    "OS_ARTIFACT_EXCLUDES",
    "SELF_EXCLUDES",
    "build_exclusion_set",
    "load_ignore_file",
]
