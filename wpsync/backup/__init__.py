"""Backup subsystem - versioned project archives with retention."""

from .archiver import Archiver, BackupArchive, archive_filename, extract_version
from .retention import (
    ArchiveFile,
    RetentionPolicy,
    find_archives,
    prune_archives,
    select_for_pruning,
)
from .writer import ArchiveWriter, ZipArchiveWriter

__all__ = [
    "Archiver",
    "BackupArchive",
    "archive_filename",
    "extract_version",
    "ArchiveFile",
    "RetentionPolicy",
    "find_archives",
    "prune_archives",
    "select_for_pruning",
    "ArchiveWriter",
    "ZipArchiveWriter",
]
