"""Deployment target and run option value objects."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

from .exceptions import ConfigurationError
from .utils import DEFAULT_SSH_PORT


class ProjectKind(str, Enum):
    """Kind of project being deployed."""

    PLUGIN = "plugin"
    """WordPress plugin, deployed to <base>/plugins/<name>"""

    THEME = "theme"
    """WordPress theme, deployed to <base>/themes/<name>"""

    CUSTOM = "custom"
    """Any other project, deployed to an explicit directory"""

    @classmethod
    def from_string(cls, value: str) -> "ProjectKind":
        """Parse a project kind from a config value.

        Args:
            value: "plugin", "theme" or "custom" (case-insensitive)

        Returns:
            ProjectKind

        Raises:
            ConfigurationError: If the value is not a known kind
        """
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError):
            valid = ", ".join(f"'{k.value}'" for k in cls)
            raise ConfigurationError(
                f"Invalid project kind {value!r}. Use one of {valid}."
            ) from None

    @property
    def display_name(self) -> str:
        """Human-readable kind used in messages."""
        if self == ProjectKind.CUSTOM:
            return "project"
        return self.value


@dataclass(frozen=True)
class SyncTarget:
    """Where a project is deployed to.

    Built once per invocation from configuration and never modified.

    Examples:
        >>> target = SyncTarget(
        ...     project_name="my-plugin",
        ...     project_kind=ProjectKind.PLUGIN,
        ...     local_root=Path("."),
        ...     remote_host="example.com",
        ...     remote_user="deploy",
        ...     remote_base_dir="/srv/wp/wp-content",
        ... )
        >>> target.resolved_remote_dir
        '/srv/wp/wp-content/plugins/my-plugin'
    """

    project_name: str
    project_kind: ProjectKind
    local_root: Path
    remote_host: str
    remote_user: str
    remote_base_dir: str = ""
    custom_remote_dir: str = ""
    remote_port: int = DEFAULT_SSH_PORT
    password: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.project_name:
            raise ConfigurationError("Project name must not be empty")
        # The name becomes a single path segment below plugins/ or themes/
        if "/" in self.project_name or self.project_name in (".", ".."):
            raise ConfigurationError(
                f"Invalid project name {self.project_name!r}: "
                f"must be a single directory name"
            )
        for key, value in (
            ("remoteBaseDir", self.remote_base_dir),
            ("customRemoteDir", self.custom_remote_dir),
        ):
            if ".." in PurePosixPath(value).parts:
                raise ConfigurationError(f"{key} must not contain '..': {value}")
        if not self.remote_host:
            raise ConfigurationError("Remote host is not configured")
        if not self.remote_user:
            raise ConfigurationError("Remote user is not configured")
        if self.project_kind == ProjectKind.CUSTOM:
            if not self.custom_remote_dir:
                raise ConfigurationError(
                    "Project kind 'custom' requires customRemoteDir to be set"
                )
            if not self.custom_remote_dir.startswith("/"):
                raise ConfigurationError(
                    f"customRemoteDir must be an absolute path: "
                    f"{self.custom_remote_dir}"
                )
        elif not self.remote_base_dir:
            raise ConfigurationError(
                f"Project kind '{self.project_kind.value}' requires "
                f"remoteBaseDir to be set"
            )

    @property
    def resolved_remote_dir(self) -> str:
        """Absolute remote directory the project is mirrored to."""
        if self.project_kind == ProjectKind.PLUGIN:
            path = PurePosixPath(self.remote_base_dir) / "plugins" / self.project_name
        elif self.project_kind == ProjectKind.THEME:
            path = PurePosixPath(self.remote_base_dir) / "themes" / self.project_name
        else:
            path = PurePosixPath(self.custom_remote_dir)
        return str(path)

    @property
    def display_kind(self) -> str:
        """Kind wording used in messages: plugin, theme or project."""
        return self.project_kind.display_name

    @property
    def server(self) -> str:
        """``user@host`` string for display and ssh."""
        return f"{self.remote_user}@{self.remote_host}"

    @property
    def uses_password(self) -> bool:
        """Whether password authentication is configured."""
        return bool(self.password)


@dataclass(frozen=True)
class RunOptions:
    """Options for a single invocation."""

    dry_run: bool = False
    create_backup: bool = True
