"""Deployment orchestration.

A run goes through the states::

    INIT -> EXCLUSIONS_RESOLVED -> [BACKUP_ATTEMPTED] -> [REMOTE_ERASED]
         -> TRANSFERRING -> REPORTED

Backup failures are warnings. Failures to reach the server, to clean the
destination or to transfer files stop the run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .backup import Archiver, BackupArchive
from .backup.writer import ArchiveWriter
from .config import DeployConfig
from .exceptions import (
    ArchiveCreationFailed,
    SyncCancelled,
    TransferFatalFailure,
    WpSyncError,
)
from .output import OutputFormatter
from .sync import (
    IGNORE_FILE_NAME,
    ExclusionSet,
    RemoteEraser,
    SyncEngine,
    SyncReport,
    build_exclusion_set,
)
from .sync.ignore import self_exclusion_for
from .target import RunOptions
from .transport import BulkTransfer, RemoteExecutor
from .utils import format_size

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


class RunState(str, Enum):
    """Progress of a deployment run."""

    INIT = "init"
    EXCLUSIONS_RESOLVED = "exclusions_resolved"
    BACKUP_ATTEMPTED = "backup_attempted"
    REMOTE_ERASED = "remote_erased"
    TRANSFERRING = "transferring"
    REPORTED = "reported"


@dataclass
class DeployResult:
    """Outcome of a deployment run."""

    state: RunState = RunState.INIT
    report: Optional[SyncReport] = None
    backup: Optional[BackupArchive] = None
    backup_error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None
    failed_step: Optional[str] = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.cancelled

    @property
    def exit_code(self) -> int:
        if self.cancelled:
            return EXIT_CANCELLED
        if self.error is not None:
            return EXIT_FAILURE
        return EXIT_OK


class _StepFailed(Exception):
    """Internal signal that a fatal step failure was recorded."""


class Deployer:
    """Runs a deployment: exclusions, backup, cleanup, transfer, report."""

    def __init__(
        self,
        config: DeployConfig,
        executor: RemoteExecutor,
        transport: BulkTransfer,
        writer: Optional[ArchiveWriter] = None,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the deployer.

        Args:
            config: Deployment configuration
            executor: Remote command executor
            transport: Bulk transfer implementation
            writer: Archive writer for backups (zip by default)
            output: Output formatter
        """
        self.config = config
        self.executor = executor
        self.transport = transport
        self.output = output or OutputFormatter()
        self.archiver = Archiver(writer)
        self.eraser = RemoteEraser(executor)
        self.engine = SyncEngine(
            transport, output=self.output, policy=config.transfer_policy
        )

    def resolve_exclusions(self) -> ExclusionSet:
        """Build the exclusion set for this project."""
        extra = []
        nested_backup_dir = self_exclusion_for(
            self.config.backup_dir, self.config.local_root
        )
        if nested_backup_dir is not None:
            extra.append(nested_backup_dir)
        # A config file under a custom name may hold credentials
        if self.config.config_path is not None:
            config_file = self_exclusion_for(
                self.config.config_path, self.config.local_root, directory=False
            )
            if config_file is not None:
                extra.append(config_file)
        return build_exclusion_set(
            ignore_file=self.config.local_root / IGNORE_FILE_NAME,
            extra_self=extra,
        )

    def run(
        self,
        options: RunOptions,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> DeployResult:
        """Run a deployment.

        Args:
            options: Options for this run
            cancel_check: Called between steps and before each file operation;
                returning True cancels the run

        Returns:
            DeployResult
        """
        result = DeployResult()
        target = self.config.target

        self._display_header(options)

        try:
            excludes = self._step(result, "resolve exclusions", self.resolve_exclusions)
            result.state = RunState.EXCLUSIONS_RESOLVED
            self._check_cancel(cancel_check)

            if options.create_backup and not options.dry_run:
                self._backup(result)
                result.state = RunState.BACKUP_ATTEMPTED
                self._check_cancel(cancel_check)
            elif options.dry_run and options.create_backup:
                self.output.info("Dry run: skipping backup")

            if self.config.clean_remote and not options.dry_run:
                self.output.info("Cleaning destination directory...")
                warnings = self._step(
                    result,
                    "clean destination",
                    lambda: self.eraser.erase(target, dry_run=options.dry_run),
                )
                for warning in warnings:
                    self.output.warning(warning)
                result.warnings.extend(warnings)
                result.state = RunState.REMOTE_ERASED
                self._check_cancel(cancel_check)

            result.state = RunState.TRANSFERRING
            result.report = self._step(
                result,
                "transfer files",
                lambda: self.engine.sync(
                    self.config.local_root,
                    target,
                    excludes,
                    dry_run=options.dry_run,
                    cancel_check=cancel_check,
                ),
            )
            if result.report.status == "partial":
                result.warnings.append(
                    f"{len(result.report.skipped)} item(s) skipped, "
                    f"{len(result.report.failures)} failed"
                )
        except _StepFailed:
            pass
        except (KeyboardInterrupt, SyncCancelled) as e:
            result.cancelled = True
            if isinstance(e, SyncCancelled) and e.report is not None:
                result.report = e.report
            self.output.warning(f"Deployment cancelled during {result.state.value}")

        result.state = RunState.REPORTED
        self._display_summary(result, options)
        return result

    def _step(self, result: DeployResult, name: str, func: Callable):
        """Run a fatal step, recording a failure on the result."""
        try:
            return func()
        except SyncCancelled:
            raise
        except TransferFatalFailure as e:
            result.report = e.report
            self._fail(result, name, e)
        except (WpSyncError, ValueError) as e:
            self._fail(result, name, e)

    def _fail(self, result: DeployResult, name: str, error: Exception) -> None:
        result.failed_step = name
        result.error = str(error)
        logger.debug(f"Step '{name}' failed", exc_info=True)
        self.output.error(f"Step '{name}' failed: {error}")
        raise _StepFailed(name)

    def _check_cancel(self, cancel_check: Optional[Callable[[], bool]]) -> None:
        if cancel_check is not None and cancel_check():
            raise SyncCancelled("Deployment cancelled by user")

    def _backup(self, result: DeployResult) -> None:
        """Create the pre-deployment backup; failures are warnings."""
        target = self.config.target
        self.output.info("Creating backup...")
        try:
            result.backup = self.archiver.create_backup(
                project_name=target.project_name,
                source_root=self.config.local_root,
                backup_dir=self.config.backup_dir,
                excludes=self.config.backup_excludes,
                retention=self.config.retention,
            )
        except ArchiveCreationFailed as e:
            result.backup_error = str(e)
            result.warnings.append(str(e))
            self.output.warning(f"Backup failed, continuing without backup: {e}")
            return

        backup = result.backup
        self.output.success(
            f"Backup created: {backup.file_path.name} "
            f"({format_size(backup.size_bytes)})"
        )
        if backup.pruned:
            self.output.info(f"Removed {len(backup.pruned)} old backup(s)")

    def _display_header(self, options: RunOptions) -> None:
        target = self.config.target
        kind = target.display_kind
        self.output.info("=" * 50)
        self.output.info(f"Syncing {kind}: {target.project_name}")
        self.output.info("=" * 50)
        self.output.info(f"Source:      {self.config.local_root}")
        self.output.info(f"Destination: {target.resolved_remote_dir}")
        self.output.info(f"Server:      {target.server}")
        if options.dry_run:
            self.output.info("Mode:        dry run")
        self.output.print("")

    def _backup_status(self, result: DeployResult, options: RunOptions) -> str:
        if result.backup is not None:
            return str(result.backup.file_path)
        if result.backup_error is not None:
            return f"failed ({result.backup_error})"
        if options.dry_run:
            return "skipped (dry run)"
        if not options.create_backup:
            return "disabled"
        return "not created"

    def _display_summary(self, result: DeployResult, options: RunOptions) -> None:
        target = self.config.target
        if result.cancelled:
            outcome = "Cancelled"
        elif result.error is not None:
            outcome = f"Failed at '{result.failed_step}'"
        elif options.dry_run:
            outcome = "Dry run complete"
        elif result.report is not None and result.report.status == "partial":
            outcome = "Completed with warnings"
        else:
            outcome = "Success"

        items = [
            ("Target", f"{target.display_kind} '{target.project_name}'"),
            ("Source", str(self.config.local_root)),
            ("Destination", f"{target.server}:{target.resolved_remote_dir}"),
            ("Backup", self._backup_status(result, options)),
        ]
        if result.report is not None:
            stats = result.report.stats()
            items.append(
                (
                    "Changes",
                    f"{stats['created']} created, {stats['updated']} updated, "
                    f"{stats['deleted']} deleted, {stats['unchanged']} unchanged",
                )
            )
        items.append(("Result", outcome))
        self.output.print_summary("Deployment Summary", items)

        if result.success and not options.dry_run:
            self.output.success(
                f"{target.display_kind.capitalize()} "
                f"'{target.project_name}' synced successfully!"
            )
