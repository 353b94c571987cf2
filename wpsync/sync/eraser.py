"""Cleaning of the remote destination before a deployment."""

import logging
from typing import TYPE_CHECKING

from ..exceptions import RemoteEraseCommandFailed, RemoteEraseFailed
from ..utils import quote_remote_path

if TYPE_CHECKING:
    from ..target import SyncTarget
    from ..transport import RemoteExecutor

logger = logging.getLogger(__name__)

# Hidden entries a plain "*" glob does not match
HIDDEN_ARTIFACTS: tuple[str, ...] = (
    ".DS_Store",
    "._*",
    ".AppleDouble",
    ".Spotlight-V100",
    ".Trashes",
    ".fseventsd",
    ".TemporaryItems",
)

# Documentation folder shipped by older releases of deployed projects
LEGACY_DOCS_DIR = "docs"


class RemoteEraser:
    """Removes the contents of the remote target directory."""

    def __init__(self, executor: "RemoteExecutor"):
        """Initialize the eraser.

        Args:
            executor: Remote command executor
        """
        self.executor = executor

    def commands(self, remote_dir: str) -> tuple[str, list[str]]:
        """Build the cleanup commands for a remote directory.

        Returns:
            Tuple of (primary command, secondary commands)
        """
        quoted = quote_remote_path(remote_dir)
        primary = f"mkdir -p {quoted} && rm -rf {quoted}/*"

        # Wildcards stay outside the quotes so the remote shell expands them
        artifacts = " ".join(f"{quoted}/{name}" for name in HIDDEN_ARTIFACTS)
        secondary = [
            f"rm -rf {artifacts}",
            f"rm -rf {quote_remote_path(f'{remote_dir}/{LEGACY_DOCS_DIR}')}",
        ]
        return primary, secondary

    def erase(self, target: "SyncTarget", dry_run: bool = False) -> list[str]:
        """Remove everything below the target's remote directory.

        The directory itself is kept. In dry-run mode nothing is executed.

        Args:
            target: Deployment target
            dry_run: If True, do nothing

        Returns:
            Warnings from secondary cleanup commands that failed

        Raises:
            RemoteUnreachable: If the host cannot be reached
            RemoteEraseFailed: If the directory contents could not be removed
        """
        remote_dir = target.resolved_remote_dir
        if dry_run:
            logger.debug(f"Dry run: not erasing {remote_dir}")
            return []

        if remote_dir in ("", "/"):
            raise RemoteEraseFailed(
                f"Refusing to erase remote directory {remote_dir!r}"
            )

        primary, secondary = self.commands(remote_dir)

        result = self.executor.run(primary)
        if not result.ok:
            raise RemoteEraseFailed(
                f"Cleaning {remote_dir} failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        logger.debug(f"Erased contents of {target.server}:{remote_dir}")

        warnings: list[str] = []
        for command in secondary:
            result = self.executor.run(command)
            if not result.ok:
                error = RemoteEraseCommandFailed(
                    f"Cleanup command failed with exit code {result.returncode}: "
                    f"{command}"
                )
                logger.warning(str(error))
                warnings.append(str(error))
        return warnings
