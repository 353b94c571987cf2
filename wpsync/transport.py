"""Remote transport for wpsync.

The sync engine, the remote eraser and the orchestrator only depend on the
``RemoteExecutor`` and ``BulkTransfer`` protocols. ``SshTransport`` implements
both over a single paramiko connection: shell commands run through
``exec_command`` and files are uploaded over SFTP.
"""

import logging
import socket
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Protocol, runtime_checkable

import paramiko

from .exceptions import RemoteUnreachable, TransportCommandError
from .sync.scanner import RemoteFile, parse_remote_listing
from .target import SyncTarget
from .utils import DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONNECT_TIMEOUT, quote_remote_path

logger = logging.getLogger(__name__)

# SFTP errors carry no exit status; reported like a failed remote command
SFTP_FAILURE = 1


@dataclass
class CommandResult:
    """Result of a remote command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class RemoteExecutor(Protocol):
    """Runs shell commands on the remote host."""

    def run(self, command: str) -> CommandResult:
        """Run a command and return its result.

        Raises:
            RemoteUnreachable: If the host cannot be reached or the command
                timed out
        """
        ...


@runtime_checkable
class BulkTransfer(Protocol):
    """File level access to the remote tree.

    All methods raise ``RemoteUnreachable`` when the host cannot be reached
    and ``TransportCommandError`` when the remote operation failed.
    """

    def list_tree(self, remote_dir: str) -> list[RemoteFile]:
        """List files and directories below ``remote_dir``.

        A missing directory yields an empty list.
        """
        ...

    def put_file(self, local_path: Path, remote_path: str, mtime: float) -> None:
        """Write a local file to ``remote_path`` and set its mtime."""
        ...

    def make_dir(self, remote_path: str) -> None:
        """Create a directory (and its parents)."""
        ...

    def remove(self, remote_path: str, recursive: bool = False) -> None:
        """Remove a file, or a directory tree when ``recursive``."""
        ...


class SshTransport:
    """RemoteExecutor and BulkTransfer over one SSH connection.

    The connection is opened on first use and shared by every command and
    upload until ``close()`` is called.

    Examples:
        >>> with SshTransport(target) as transport:
        ...     transport.run("uname -a").stdout
        'Linux web01 ...'
    """

    def __init__(
        self,
        target: SyncTarget,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        """Initialize the transport.

        Args:
            target: Deployment target (host, user, port, password)
            timeout: Timeout for a single command in seconds
            connect_timeout: Timeout for establishing the connection
        """
        self.target = target
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        # Remote directories known to exist; reset when the tree is listed
        self._known_dirs: set[str] = set()

    def __enter__(self) -> "SshTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def connect(self) -> paramiko.SSHClient:
        """Open the connection if it is not open yet.

        Returns:
            The connected client

        Raises:
            RemoteUnreachable: If the host cannot be reached or
                authentication failed
        """
        if self._client is not None:
            return self._client

        logger.debug(
            f"Connecting to {self.target.server} port {self.target.remote_port}"
        )
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kwargs: dict[str, Any] = {
            "hostname": self.target.remote_host,
            "port": self.target.remote_port,
            "username": self.target.remote_user,
            "timeout": self.connect_timeout,
            "banner_timeout": self.connect_timeout,
            "auth_timeout": self.connect_timeout,
        }
        if self.target.uses_password:
            kwargs["password"] = self.target.password

        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise RemoteUnreachable(
                f"Cannot connect to {self.target.server}: {e}"
            ) from e

        self._client = client
        logger.debug(f"Connected to {self.target.server}")
        return client

    def close(self) -> None:
        """Close the SFTP session and the connection."""
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug(f"Disconnected from {self.target.server}")
        self._known_dirs.clear()

    def _open_sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            client = self.connect()
            try:
                self._sftp = client.open_sftp()
            except (paramiko.SSHException, OSError) as e:
                self.close()
                raise RemoteUnreachable(
                    f"Cannot open SFTP session on {self.target.server}: {e}"
                ) from e
        return self._sftp

    def run(self, command: str) -> CommandResult:
        """Run a command on the remote host.

        Args:
            command: Shell command executed by the remote login shell

        Returns:
            CommandResult

        Raises:
            RemoteUnreachable: If the connection failed or the command timed out
        """
        client = self.connect()
        logger.debug(f"Running on {self.target.server}: {command}")

        try:
            stdin, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            stdin.close()
            out = stdout.read()
            err = stderr.read()
            returncode = stdout.channel.recv_exit_status()
        except socket.timeout as e:
            self.close()
            raise RemoteUnreachable(
                f"Command on {self.target.server} timed out after "
                f"{self.timeout:.0f}s"
            ) from e
        except (paramiko.SSHException, OSError) as e:
            self.close()
            raise RemoteUnreachable(
                f"Lost connection to {self.target.server}: {e}"
            ) from e

        return CommandResult(
            returncode=returncode,
            stdout=out.decode("utf-8", errors="replace"),
            stderr=err.decode("utf-8", errors="replace"),
        )

    def _check(self, command: str) -> CommandResult:
        result = self.run(command)
        if not result.ok:
            raise TransportCommandError(
                f"Remote command failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def list_tree(self, remote_dir: str) -> list[RemoteFile]:
        self._known_dirs.clear()
        quoted = quote_remote_path(remote_dir)
        command = (
            f"[ -d {quoted} ] || exit 0; "
            f"find {quoted} -mindepth 1 -printf '%y\\t%s\\t%T@\\t%P\\n'"
        )
        result = self._check(command)
        files = parse_remote_listing(result.stdout)
        logger.debug(f"Listed {len(files)} remote entries in {remote_dir}")
        return files

    def put_file(self, local_path: Path, remote_path: str, mtime: float) -> None:
        with open(local_path, "rb") as f:
            parent = str(PurePosixPath(remote_path).parent)
            if parent not in self._known_dirs:
                self.make_dir(parent)
            sftp = self._open_sftp()
            try:
                sftp.putfo(f, remote_path)
                # SFTP v3 timestamps are whole seconds
                sftp.utime(remote_path, (int(mtime), int(mtime)))
            except socket.timeout as e:
                self.close()
                raise RemoteUnreachable(
                    f"Upload to {self.target.server} timed out: {remote_path}"
                ) from e
            except paramiko.SSHException as e:
                self.close()
                raise RemoteUnreachable(
                    f"Lost connection to {self.target.server}: {e}"
                ) from e
            except OSError as e:
                raise TransportCommandError(
                    f"Upload of {remote_path} failed: {e}",
                    returncode=SFTP_FAILURE,
                    stderr=str(e),
                ) from e

    def make_dir(self, remote_path: str) -> None:
        self._check(f"mkdir -p {quote_remote_path(remote_path)}")
        self._known_dirs.add(remote_path)

    def remove(self, remote_path: str, recursive: bool = False) -> None:
        flags = "-rf" if recursive else "-f"
        self._check(f"rm {flags} {quote_remote_path(remote_path)}")
        self._known_dirs = {
            d
            for d in self._known_dirs
            if d != remote_path and not d.startswith(f"{remote_path}/")
        }
