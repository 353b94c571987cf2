"""Shared fixtures for wpsync tests."""

import tempfile
from pathlib import Path, PurePosixPath
from typing import Optional
from unittest.mock import Mock

import pytest

from wpsync.exceptions import RemoteUnreachable
from wpsync.output import OutputFormatter
from wpsync.sync.scanner import RemoteFile
from wpsync.target import ProjectKind, SyncTarget
from wpsync.transport import CommandResult

REMOTE_BASE = "/srv/www/wp-content"


class FakeRemote:
    """In-memory remote host implementing RemoteExecutor and BulkTransfer.

    Files are stored by absolute path as ``(content, mtime)``. Every call
    that changes the tree increments ``mutations``.
    """

    def __init__(self):
        self.files: dict[str, tuple[bytes, int]] = {}
        self.dirs: set[str] = set()
        self.commands: list[str] = []
        self.mutations = 0
        self.unreachable = False
        self.failures: dict[str, Exception] = {}
        self.command_results: dict[str, CommandResult] = {}
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    # Test helpers

    def add_file(self, path: str, content: bytes = b"", mtime: int = 0) -> None:
        self.files[path] = (content, mtime)
        self._add_parents(path)

    def add_dir(self, path: str) -> None:
        self.dirs.add(path)
        self._add_parents(path)

    def relative_files(self, root: str) -> set[str]:
        prefix = root.rstrip("/") + "/"
        return {p[len(prefix) :] for p in self.files if p.startswith(prefix)}

    def relative_dirs(self, root: str) -> set[str]:
        prefix = root.rstrip("/") + "/"
        return {p[len(prefix) :] for p in self.dirs if p.startswith(prefix)}

    def _add_parents(self, path: str) -> None:
        for parent in PurePosixPath(path).parents:
            if str(parent) != "/":
                self.dirs.add(str(parent))

    def _check(self, path: str) -> None:
        if self.unreachable:
            raise RemoteUnreachable("Cannot connect to deploy@example.com")
        error = self.failures.get(path)
        if error is not None:
            raise error

    # RemoteExecutor

    def run(self, command: str) -> CommandResult:
        if self.unreachable:
            raise RemoteUnreachable("Cannot connect to deploy@example.com")
        self.commands.append(command)
        for needle, result in self.command_results.items():
            if needle in command:
                return result
        if " && rm -rf " in command:
            self.files.clear()
            self.dirs.clear()
            self.mutations += 1
        return CommandResult(returncode=0)

    # BulkTransfer

    def list_tree(self, remote_dir: str) -> list[RemoteFile]:
        self._check(remote_dir)
        prefix = remote_dir.rstrip("/") + "/"
        entries = [
            RemoteFile(p[len(prefix) :], 0, None, is_dir=True)
            for p in self.dirs
            if p.startswith(prefix)
        ]
        entries.extend(
            RemoteFile(p[len(prefix) :], len(content), float(mtime))
            for p, (content, mtime) in self.files.items()
            if p.startswith(prefix)
        )
        return entries

    def put_file(self, local_path: Path, remote_path: str, mtime: float) -> None:
        self._check(remote_path)
        content = local_path.read_bytes()
        self.add_file(remote_path, content, int(mtime))
        self.mutations += 1

    def make_dir(self, remote_path: str) -> None:
        self._check(remote_path)
        self.add_dir(remote_path)
        self.mutations += 1

    def remove(self, remote_path: str, recursive: bool = False) -> None:
        self._check(remote_path)
        self.files.pop(remote_path, None)
        if recursive:
            prefix = remote_path + "/"
            self.dirs.discard(remote_path)
            for path in [p for p in self.files if p.startswith(prefix)]:
                del self.files[path]
            self.dirs = {d for d in self.dirs if not d.startswith(prefix)}
        self.mutations += 1


@pytest.fixture
def fake_remote():
    """Provide an empty in-memory remote host."""
    return FakeRemote()


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True  # Suppress output during tests
    output.json_output = False
    return output


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_dir(temp_dir):
    """Create an empty project directory named like a plugin."""
    project = temp_dir / "my-plugin"
    project.mkdir()
    return project


def build_target(
    local_root: Path,
    kind: ProjectKind = ProjectKind.PLUGIN,
    name: Optional[str] = None,
    **kwargs,
) -> SyncTarget:
    """Build a SyncTarget for tests."""
    kwargs.setdefault("remote_host", "example.com")
    kwargs.setdefault("remote_user", "deploy")
    if kind != ProjectKind.CUSTOM:
        kwargs.setdefault("remote_base_dir", REMOTE_BASE)
    return SyncTarget(
        project_name=name or local_root.name,
        project_kind=kind,
        local_root=local_root,
        **kwargs,
    )


@pytest.fixture
def make_target():
    """Provide a factory for SyncTarget objects."""
    return build_target
