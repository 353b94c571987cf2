"""Core sync engine for mirroring a local tree to a remote directory."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import (
    RemoteUnreachable,
    SyncCancelled,
    TransferFatalFailure,
    TransportCommandError,
)
from ..output import OutputFormatter
from ..utils import DEFAULT_PARTIAL_STATUS_CODES
from .comparator import ChangeKind, ChangeRecord, FileComparator
from .ignore import ExclusionSet
from .operations import SyncOperations
from .scanner import DirectoryScanner

if TYPE_CHECKING:
    from ..target import SyncTarget
    from ..transport import BulkTransfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferPolicy:
    """Boundary between tolerated and fatal transfer failures."""

    partial_status_codes: frozenset[int] = DEFAULT_PARTIAL_STATUS_CODES
    """Transport status codes meaning "some files were skipped" (warning only)"""

    max_failed_files: int = 0
    """Number of failed operations tolerated before the run is aborted"""


@dataclass
class SyncReport:
    """Outcome of a sync run, real or dry."""

    records: list[ChangeRecord] = field(default_factory=list)
    """One record per inspected path, in lexical order"""

    failures: list[tuple[str, str]] = field(default_factory=list)
    """(relative_path, reason) of failed operations"""

    skipped: list[tuple[str, str]] = field(default_factory=list)
    """(relative_path, reason) of operations skipped with a tolerated status"""

    dry_run: bool = False
    cancelled: bool = False

    operations_done: int = 0
    """Number of remote operations that completed"""

    def by_kind(self, kind: ChangeKind) -> list[ChangeRecord]:
        return [r for r in self.records if r.classification == kind]

    @property
    def created(self) -> list[ChangeRecord]:
        return self.by_kind(ChangeKind.CREATED)

    @property
    def updated(self) -> list[ChangeRecord]:
        return self.by_kind(ChangeKind.UPDATED)

    @property
    def deleted(self) -> list[ChangeRecord]:
        return self.by_kind(ChangeKind.DELETED)

    @property
    def unchanged(self) -> list[ChangeRecord]:
        return self.by_kind(ChangeKind.UNCHANGED)

    @property
    def changes(self) -> list[ChangeRecord]:
        return [r for r in self.records if r.classification.is_change]

    @property
    def classification(self) -> dict[str, ChangeKind]:
        """Mapping of relative path to classification."""
        return {r.relative_path: r.classification for r in self.records}

    @property
    def status(self) -> str:
        """``"ok"`` or ``"partial"`` when some operations were skipped or failed."""
        if self.failures or self.skipped:
            return "partial"
        return "ok"

    def stats(self) -> dict:
        """Counts per classification."""
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
            "unchanged": len(self.unchanged),
            "failed": len(self.failures),
            "skipped": len(self.skipped),
        }

    def to_dict(self) -> dict:
        """Convert the report to a JSON-serializable dictionary."""
        return {
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "status": self.status,
            "stats": self.stats(),
            "changes": [
                {
                    "path": r.relative_path,
                    "classification": r.classification.value,
                    "size": r.size_bytes,
                }
                for r in self.changes
            ],
            "failures": [{"path": p, "reason": m} for p, m in self.failures],
            "skipped": [{"path": p, "reason": m} for p, m in self.skipped],
        }


class SyncEngine:
    """Mirrors a local tree to a remote directory.

    The local tree is authoritative: after a run the remote directory holds
    exactly the non-excluded local files, and everything else is deleted.
    """

    def __init__(
        self,
        transport: "BulkTransfer",
        output: Optional[OutputFormatter] = None,
        policy: Optional[TransferPolicy] = None,
        modify_window: float = 0,
    ):
        """Initialize sync engine.

        Args:
            transport: Bulk transfer implementation
            output: Output formatter for displaying progress/status
            policy: Partial failure policy
            modify_window: Tolerance in seconds when comparing mtimes
        """
        self.transport = transport
        self.output = output or OutputFormatter()
        self.policy = policy or TransferPolicy()
        self.modify_window = modify_window

    def sync(
        self,
        source_root: Path,
        target: "SyncTarget",
        excludes: ExclusionSet,
        dry_run: bool = False,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> SyncReport:
        """Mirror ``source_root`` to the target's remote directory.

        Args:
            source_root: Local project root
            target: Deployment target
            excludes: Exclusion rules
            dry_run: If True, classify only and issue no remote mutation
            cancel_check: Called before each operation; returning True stops
                the run

        Returns:
            SyncReport

        Raises:
            ValueError: If the source root is not a directory
            RemoteUnreachable: If the remote tree cannot be listed
            TransferFatalFailure: If the transfer failed beyond the policy
            SyncCancelled: If the run was cancelled
        """
        if not source_root.exists():
            raise ValueError(f"Local directory does not exist: {source_root}")
        if not source_root.is_dir():
            raise ValueError(f"Local path is not a directory: {source_root}")

        remote_root = target.resolved_remote_dir

        if not self.output.quiet:
            self.output.info(f"Syncing: {source_root} -> {target.server}:{remote_root}")
            if dry_run:
                self.output.info("Dry run: No changes will be made")
            self.output.print("")

        records = self.plan(source_root, remote_root, excludes)
        report = SyncReport(records=records, dry_run=dry_run)

        self._display_sync_plan(report)

        if not dry_run:
            operations = SyncOperations(self.transport, remote_root)
            self._execute_records(report, operations, cancel_check)

        if not self.output.quiet:
            self._display_summary(report)

        return report

    def plan(
        self, source_root: Path, remote_root: str, excludes: ExclusionSet
    ) -> list[ChangeRecord]:
        """Scan both sides and classify every path.

        Args:
            source_root: Local project root
            remote_root: Absolute remote directory
            excludes: Exclusion rules

        Returns:
            List of ChangeRecord objects in lexical path order
        """
        scan_start = time.time()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task("Scanning local directory...", total=None)
            scanner = DirectoryScanner(excludes)
            local_files = scanner.scan_local(source_root)
            progress.update(task, description=f"Found {len(local_files)} local item(s)")

            task = progress.add_task("Scanning remote directory...", total=None)
            remote_files = self.transport.list_tree(remote_root)
            progress.update(
                task, description=f"Found {len(remote_files)} remote item(s)"
            )

        logger.debug(
            f"Scanned {len(local_files)} local and {len(remote_files)} remote "
            f"entries in {time.time() - scan_start:.2f}s"
        )

        local_file_map = {f.relative_path: f for f in local_files}
        remote_file_map = {f.relative_path: f for f in remote_files}

        comparator = FileComparator(excludes, modify_window=self.modify_window)
        return comparator.compare_files(local_file_map, remote_file_map)

    def _ordered_operations(self, records: list[ChangeRecord]) -> list[ChangeRecord]:
        """Records that need a remote operation, in execution order.

        Creations and updates come first in lexical order so parents precede
        children. Deletions follow in reverse lexical order; deletions below a
        directory that is itself deleted are covered by its recursive removal.
        """
        transfers = [
            r
            for r in records
            if r.classification in (ChangeKind.CREATED, ChangeKind.UPDATED)
        ]
        deletions = [r for r in records if r.classification == ChangeKind.DELETED]
        deleted_dirs = {r.relative_path for r in deletions if r.is_dir}
        # Remote directories replaced by a local file are removed recursively
        deleted_dirs.update(
            r.relative_path
            for r in transfers
            if r.remote_file is not None and r.remote_file.is_dir and not r.is_dir
        )

        def covered(path: str) -> bool:
            parts = path.split("/")
            return any(
                "/".join(parts[:idx]) in deleted_dirs for idx in range(1, len(parts))
            )

        deletions = [r for r in deletions if not covered(r.relative_path)]
        deletions.sort(key=lambda r: r.relative_path, reverse=True)
        return transfers + deletions

    def _execute_records(
        self,
        report: SyncReport,
        operations: SyncOperations,
        cancel_check: Optional[Callable[[], bool]],
    ) -> None:
        """Execute all operations of a plan, updating the report."""
        ordered = self._ordered_operations(report.records)
        if not ordered:
            return

        with Progress(disable=self.output.quiet) as progress:
            task = progress.add_task("Syncing files...", total=len(ordered))
            try:
                for record in ordered:
                    if cancel_check is not None and cancel_check():
                        report.cancelled = True
                        break
                    self._execute_single_record(record, operations, report)
                    progress.update(task, advance=1)
            except KeyboardInterrupt:
                report.cancelled = True

        if report.cancelled:
            if not self.output.quiet:
                self.output.warning("Sync cancelled by user")
            raise SyncCancelled(
                f"Sync cancelled after {report.operations_done} operation(s)",
                report=report,
            )

    def _execute_single_record(
        self,
        record: ChangeRecord,
        operations: SyncOperations,
        report: SyncReport,
    ) -> None:
        """Execute one operation and classify its failure, if any."""
        action_start = time.time()
        try:
            operations.apply(record)
        except RemoteUnreachable as e:
            report.failures.append((record.relative_path, str(e)))
            raise TransferFatalFailure(
                f"Remote host unreachable while syncing {record.relative_path}: {e}",
                report=report,
            ) from e
        except TransportCommandError as e:
            if e.returncode in self.policy.partial_status_codes:
                self._skip(report, record, str(e))
                return
            report.failures.append((record.relative_path, str(e)))
            self.output.error(f"Failed to sync {record.relative_path}: {e}")
            if len(report.failures) > self.policy.max_failed_files:
                raise TransferFatalFailure(
                    f"{len(report.failures)} file operation(s) failed "
                    f"(tolerated: {self.policy.max_failed_files})",
                    report=report,
                ) from e
            return
        except OSError as e:
            # Local file vanished or became unreadable after the scan
            self._skip(report, record, str(e))
            return

        report.operations_done += 1
        logger.debug(
            f"{record.classification.value} {record.relative_path} "
            f"in {time.time() - action_start:.2f}s"
        )

    def _skip(self, report: SyncReport, record: ChangeRecord, reason: str) -> None:
        report.skipped.append((record.relative_path, reason))
        self.output.warning(f"Skipped {record.relative_path}: {reason}")

    def _display_sync_plan(self, report: SyncReport) -> None:
        """Display sync plan to user."""
        if self.output.quiet:
            return

        self.output.info("Sync plan:")
        for record in report.changes:
            symbol = {
                ChangeKind.CREATED: "+",
                ChangeKind.UPDATED: "~",
                ChangeKind.DELETED: "-",
            }[record.classification]
            suffix = "/" if record.is_dir else ""
            self.output.info(f"  {symbol} {record.relative_path}{suffix}")

        stats = report.stats()
        if stats["created"] > 0:
            self.output.info(f"  Create: {stats['created']} item(s)")
        if stats["updated"] > 0:
            self.output.info(f"  Update: {stats['updated']} item(s)")
        if stats["deleted"] > 0:
            self.output.info(f"  Delete: {stats['deleted']} item(s)")
        if stats["unchanged"] > 0:
            self.output.info(f"  Unchanged: {stats['unchanged']} item(s)")
        self.output.print("")

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary."""
        if report.dry_run:
            self.output.success("Dry run complete!")
        elif report.status == "partial":
            self.output.warning(
                f"Sync completed with {len(report.skipped)} skipped and "
                f"{len(report.failures)} failed item(s)"
            )
        else:
            self.output.success("Sync complete!")

        if not report.changes:
            self.output.info("No changes needed - everything is in sync!")
