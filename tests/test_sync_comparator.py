"""Tests for the FileComparator class."""

from pathlib import Path

from wpsync.sync.comparator import ChangeKind, FileComparator
from wpsync.sync.ignore import ExclusionSet
from wpsync.sync.scanner import LocalFile, RemoteFile


def _local(relative_path: str = "test.txt", size: int = 100, mtime: float = 1000.0):
    """Create a LocalFile for testing."""
    return LocalFile(
        path=Path(f"/local/{relative_path}"),
        relative_path=relative_path,
        size=size,
        mtime=mtime,
    )


def _local_dir(relative_path: str) -> LocalFile:
    return LocalFile(
        path=Path(f"/local/{relative_path}"),
        relative_path=relative_path,
        size=0,
        mtime=1000.0,
        is_dir=True,
    )


def _remote(relative_path: str = "test.txt", size: int = 100, mtime=1000.0):
    """Create a RemoteFile for testing."""
    return RemoteFile(relative_path=relative_path, size=size, mtime=mtime)


class TestLocalOnly:
    """Tests for paths that only exist locally."""

    def test_local_only_file_is_created(self):
        """Local-only files are created remotely."""
        comparator = FileComparator()

        records = comparator.compare_files({"test.txt": _local()}, {})

        assert len(records) == 1
        assert records[0].classification == ChangeKind.CREATED
        assert records[0].reason == "New local file"
        assert records[0].size_bytes == 100

    def test_local_only_directory_is_created(self):
        """Local-only directories are created remotely."""
        comparator = FileComparator()

        records = comparator.compare_files({"assets": _local_dir("assets")}, {})

        assert records[0].classification == ChangeKind.CREATED
        assert records[0].is_dir is True
        assert records[0].reason == "New local directory"

    def test_excluded_local_file_is_not_created(self):
        """Excluded local files never produce a record."""
        comparator = FileComparator(ExclusionSet.from_patterns(["*.log"]))

        records = comparator.compare_files({"debug.log": _local("debug.log")}, {})

        assert records == []


class TestRemoteOnly:
    """Tests for paths that only exist remotely."""

    def test_remote_only_file_is_deleted(self):
        """Files removed locally are deleted remotely."""
        comparator = FileComparator()

        records = comparator.compare_files({}, {"old.txt": _remote("old.txt")})

        assert records[0].classification == ChangeKind.DELETED
        assert records[0].reason == "Removed locally"

    def test_excluded_remote_file_is_deleted(self):
        """Remote files matching an exclusion are deleted."""
        comparator = FileComparator(ExclusionSet.from_patterns(["*.log"]))

        records = comparator.compare_files({}, {"debug.log": _remote("debug.log")})

        assert records[0].classification == ChangeKind.DELETED
        assert records[0].reason == "Excluded from deployment"

    def test_excluded_local_and_remote_file_is_deleted(self):
        """An excluded path is deleted even if it exists locally."""
        comparator = FileComparator(ExclusionSet.from_patterns(["*.md"]))

        records = comparator.compare_files(
            {"README.md": _local("README.md")}, {"README.md": _remote("README.md")}
        )

        assert records[0].classification == ChangeKind.DELETED


class TestExistingFiles:
    """Tests for paths present on both sides."""

    def test_identical_files_are_unchanged(self):
        """Same size and mtime means unchanged."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"test.txt": _local()}, {"test.txt": _remote()}
        )

        assert records[0].classification == ChangeKind.UNCHANGED

    def test_size_difference_is_updated(self):
        """A different size means updated."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"test.txt": _local(size=200)}, {"test.txt": _remote(size=100)}
        )

        assert records[0].classification == ChangeKind.UPDATED
        assert "Size differs" in records[0].reason

    def test_mtime_difference_is_updated(self):
        """A different modification time means updated."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"test.txt": _local(mtime=2000.0)}, {"test.txt": _remote(mtime=1000.0)}
        )

        assert records[0].classification == ChangeKind.UPDATED
        assert records[0].reason == "Modification time differs"

    def test_subsecond_mtime_difference_is_unchanged(self):
        """Remote timestamps only keep whole seconds."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"test.txt": _local(mtime=1000.75)}, {"test.txt": _remote(mtime=1000.0)}
        )

        assert records[0].classification == ChangeKind.UNCHANGED

    def test_modify_window(self):
        """Differences within the modify window are tolerated."""
        comparator = FileComparator(modify_window=2)

        records = comparator.compare_files(
            {"test.txt": _local(mtime=1002.0)}, {"test.txt": _remote(mtime=1000.0)}
        )

        assert records[0].classification == ChangeKind.UNCHANGED

    def test_unknown_remote_mtime_is_updated(self):
        """Without a remote mtime the file is transferred again."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"test.txt": _local()}, {"test.txt": _remote(mtime=None)}
        )

        assert records[0].classification == ChangeKind.UPDATED
        assert records[0].reason == "Remote mtime unavailable"

    def test_existing_directory_is_unchanged(self):
        """Directories present on both sides are unchanged."""
        comparator = FileComparator()
        remote_dir = RemoteFile("assets", 0, 5.0, is_dir=True)

        records = comparator.compare_files(
            {"assets": _local_dir("assets")}, {"assets": remote_dir}
        )

        assert records[0].classification == ChangeKind.UNCHANGED
        assert records[0].is_dir is True

    def test_type_change_is_updated(self):
        """A remote directory where a local file exists is updated."""
        comparator = FileComparator()
        remote_dir = RemoteFile("config", 0, 1000.0, is_dir=True)

        records = comparator.compare_files(
            {"config": _local("config")}, {"config": remote_dir}
        )

        assert records[0].classification == ChangeKind.UPDATED
        assert records[0].is_dir is False


class TestCompareFiles:
    """Tests for the full comparison."""

    def test_records_in_lexical_order(self):
        """Records are returned sorted by path."""
        comparator = FileComparator()

        records = comparator.compare_files(
            {"b.txt": _local("b.txt"), "a.txt": _local("a.txt")},
            {"c.txt": _remote("c.txt")},
        )

        assert [r.relative_path for r in records] == ["a.txt", "b.txt", "c.txt"]

    def test_every_path_classified_once(self):
        """Each path appears exactly once with one classification."""
        comparator = FileComparator()
        local = {
            "a.txt": _local("a.txt"),
            "b.txt": _local("b.txt", size=5),
            "d.txt": _local("d.txt"),
        }
        remote = {
            "b.txt": _remote("b.txt", size=7),
            "c.txt": _remote("c.txt"),
            "d.txt": _remote("d.txt"),
        }

        records = comparator.compare_files(local, remote)

        assert {r.relative_path: r.classification for r in records} == {
            "a.txt": ChangeKind.CREATED,
            "b.txt": ChangeKind.UPDATED,
            "c.txt": ChangeKind.DELETED,
            "d.txt": ChangeKind.UNCHANGED,
        }

    def test_is_change(self):
        """Only unchanged paths need no operation."""
        assert ChangeKind.CREATED.is_change
        assert ChangeKind.UPDATED.is_change
        assert ChangeKind.DELETED.is_change
        assert not ChangeKind.UNCHANGED.is_change
