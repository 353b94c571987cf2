"""CLI interface for wpsync."""

import logging
from pathlib import Path
from typing import Any

import click

from .config import CONFIG_FILE_NAME, load_config
from .exceptions import ConfigurationError
from .orchestrator import EXIT_FAILURE, Deployer
from .output import OutputFormatter
from .target import RunOptions
from .transport import SshTransport

logger = logging.getLogger(__name__)


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_extra_args": True,
    }
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Preview changes without cleaning, transferring or deleting anything",
)
@click.option(
    "--no-backup",
    is_flag=True,
    help="Do not create a backup archive for this run",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_FILE_NAME,
    envvar="WPSYNC_CONFIG",
    show_default=True,
    help="Path to the project configuration file",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", "json_output", is_flag=True, help="Output report as JSON")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.pass_context
def main(
    ctx: Any,
    dry_run: bool,
    no_backup: bool,
    config_path: Path,
    quiet: bool,
    json_output: bool,
    verbose: bool,
) -> None:
    """wpsync - Deploy a WordPress plugin, theme or web project over SSH.

    Mirrors the project directory to the server: new and changed files are
    uploaded, files that no longer exist locally are removed. A backup
    archive of the project is created first unless disabled.

    Examples:
        wpsync --dry-run          # Preview changes
        wpsync                    # Backup, clean and sync
        wpsync --no-backup        # Sync without creating a backup
    """
    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("wpsync").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)

    out = OutputFormatter(json_output=json_output, quiet=quiet)

    if ctx.args:
        logger.debug(f"Ignoring unrecognized arguments: {' '.join(ctx.args)}")

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        out.error(f"Step 'load configuration' failed: {e}")
        ctx.exit(EXIT_FAILURE)
        return  # Unreachable, but helps type checker

    options = RunOptions(
        dry_run=dry_run,
        create_backup=config.create_backup and not no_backup,
    )

    with SshTransport(config.target, timeout=config.command_timeout) as transport:
        deployer = Deployer(
            config, executor=transport, transport=transport, output=out
        )
        result = deployer.run(options)

    if json_output:
        out.output_json(
            {
                "success": result.success,
                "state": result.state.value,
                "failed_step": result.failed_step,
                "error": result.error,
                "backup": str(result.backup.file_path) if result.backup else None,
                "warnings": result.warnings,
                "report": result.report.to_dict() if result.report else None,
            }
        )

    ctx.exit(result.exit_code)


if __name__ == "__main__":
    main()
