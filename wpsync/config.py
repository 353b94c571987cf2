"""Configuration loading for wpsync.

A project is configured with a JSON file (``wpsync.json`` by default) placed
in the project root. Keys use camelCase::

    {
        "remoteHost": "server.example.com",
        "remoteUser": "deploy",
        "projectKind": "plugin",
        "remoteBaseDir": "/home/deploy/htdocs/example.com/wp-content",
        "createBackup": true,
        "maxArchivesPerVersion": 5
    }

Credentials should not be stored in the file; ``WPSYNC_PASSWORD`` in the
environment takes precedence over the ``password`` key.
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .backup.retention import RetentionPolicy
from .exceptions import ConfigurationError
from .sync.engine import TransferPolicy
from .target import ProjectKind, SyncTarget
from .utils import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_PARTIAL_STATUS_CODES,
    DEFAULT_SSH_PORT,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "wpsync.json"

DEFAULT_BACKUP_DIR = "backups"
DEFAULT_MAX_ARCHIVES_PER_VERSION = 5
DEFAULT_BACKUP_EXCLUDES: tuple[str, ...] = (".git/", "node_modules/")

# Environment variables that override values from the config file
ENV_OVERRIDES = {
    "WPSYNC_REMOTE_HOST": "remoteHost",
    "WPSYNC_REMOTE_USER": "remoteUser",
    "WPSYNC_PASSWORD": "password",
}


@dataclass(frozen=True)
class DeployConfig:
    """Immutable configuration for one deployment run."""

    target: SyncTarget
    create_backup: bool = True
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    backup_excludes: tuple[str, ...] = DEFAULT_BACKUP_EXCLUDES
    clean_remote: bool = True
    transfer_policy: TransferPolicy = field(default_factory=TransferPolicy)
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    config_path: Optional[Path] = None
    """File the configuration was loaded from, if any"""

    @property
    def local_root(self) -> Path:
        """Project root directory."""
        return self.target.local_root

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        local_root: Path,
        config_path: Optional[Path] = None,
    ) -> "DeployConfig":
        """Create a configuration from a dictionary.

        Args:
            data: Dictionary with camelCase keys
            local_root: Project root directory
            config_path: File the dictionary was read from

        Returns:
            DeployConfig instance

        Raises:
            ConfigurationError: If a value is missing or invalid
        """
        local_root = local_root.resolve()
        kind = ProjectKind.from_string(str(data.get("projectKind", "plugin")))

        target = SyncTarget(
            project_name=str(data.get("projectName") or local_root.name),
            project_kind=kind,
            local_root=local_root,
            remote_host=str(data.get("remoteHost") or ""),
            remote_user=str(data.get("remoteUser") or ""),
            remote_base_dir=str(data.get("remoteBaseDir") or "").rstrip("/"),
            custom_remote_dir=str(data.get("customRemoteDir") or "").rstrip("/"),
            remote_port=_get_int(data, "remotePort", DEFAULT_SSH_PORT, minimum=1),
            password=data.get("password") or None,
        )

        backup_dir = Path(str(data.get("backupDir") or DEFAULT_BACKUP_DIR))
        backup_dir = backup_dir.expanduser()
        if not backup_dir.is_absolute():
            backup_dir = local_root / backup_dir

        retention = RetentionPolicy(
            max_archives_per_version=_get_int(
                data, "maxArchivesPerVersion", DEFAULT_MAX_ARCHIVES_PER_VERSION
            ),
            max_age_days=_get_int(data, "maxBackupAgeDays", 0),
        )

        backup_excludes = data.get("backupExcludePatterns", DEFAULT_BACKUP_EXCLUDES)
        if isinstance(backup_excludes, str) or not all(
            isinstance(p, str) for p in backup_excludes
        ):
            raise ConfigurationError("backupExcludePatterns must be a list of strings")

        codes = data.get("partialStatusCodes", sorted(DEFAULT_PARTIAL_STATUS_CODES))
        if not isinstance(codes, list) or not all(isinstance(c, int) for c in codes):
            raise ConfigurationError("partialStatusCodes must be a list of integers")

        policy = TransferPolicy(
            partial_status_codes=frozenset(codes),
            max_failed_files=_get_int(data, "maxFailedFiles", 0),
        )

        timeout = data.get("commandTimeout", DEFAULT_COMMAND_TIMEOUT)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError("commandTimeout must be a positive number")

        return cls(
            target=target,
            create_backup=_get_bool(data, "createBackup", True),
            backup_dir=backup_dir,
            retention=retention,
            backup_excludes=tuple(backup_excludes),
            clean_remote=_get_bool(data, "cleanRemote", True),
            transfer_policy=policy,
            command_timeout=float(timeout),
            config_path=config_path.resolve() if config_path else None,
        )


def _get_int(
    data: Mapping[str, Any], key: str, default: int, minimum: int = 0
) -> int:
    value = data.get(key, default)
    # bool is a subclass of int but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {value}")
    return value


def _get_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{key} must be true or false, got {value!r}")
    return value


def load_config(
    config_path: Path,
    local_root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DeployConfig:
    """Load the deployment configuration from a JSON file.

    Args:
        config_path: Path to the JSON config file
        local_root: Project root (defaults to the config file's directory)
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        DeployConfig instance

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid

    Examples:
        >>> config = load_config(Path("wpsync.json"))
        >>> config.target.resolved_remote_dir
        '/srv/wp/wp-content/plugins/my-plugin'
    """
    if environ is None:
        environ = os.environ

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a JSON object")

    for env_name, key in ENV_OVERRIDES.items():
        if environ.get(env_name):
            logger.debug(f"Using {env_name} from environment for {key}")
            data[key] = environ[env_name]

    if local_root is None:
        local_root = config_path.resolve().parent

    config = DeployConfig.from_dict(data, local_root, config_path=config_path)
    logger.debug(
        f"Loaded config from {config_path}: {config.target.project_kind.value} "
        f"'{config.target.project_name}' -> {config.target.resolved_remote_dir}"
    )
    return config
