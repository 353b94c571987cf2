"""Unit tests for the wpsync CLI."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from wpsync.cli import main

REMOTE_ROOT = "/srv/www/wp-content/plugins/my-plugin"


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_path(project_dir):
    """Write a project with a configuration file."""
    (project_dir / "my-plugin.php").write_text("<?php\n/* Version: 0.9 */\n")
    path = project_dir / "wpsync.json"
    path.write_text(
        json.dumps(
            {
                "remoteHost": "example.com",
                "remoteUser": "deploy",
                "remoteBaseDir": "/srv/www/wp-content",
            }
        )
    )
    return path


@pytest.fixture
def mock_transport(fake_remote):
    """Replace the ssh transport with the in-memory remote."""
    with patch("wpsync.cli.SshTransport") as mock_class:
        mock_class.return_value = fake_remote
        yield mock_class


class TestMainCommand:
    """Tests for the main command."""

    def test_help(self, runner):
        """Test help lists the options."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--dry-run" in result.output
        assert "--no-backup" in result.output
        assert "--config" in result.output

    def test_missing_config(self, runner, temp_dir):
        """A missing configuration file exits with failure."""
        result = runner.invoke(main, ["--config", str(temp_dir / "missing.json")])
        assert result.exit_code == 1

    def test_invalid_config(self, runner, temp_dir, mock_transport):
        path = temp_dir / "wpsync.json"
        path.write_text(json.dumps({"remoteHost": "example.com"}))

        result = runner.invoke(main, ["--config", str(path)])

        assert result.exit_code == 1
        mock_transport.assert_not_called()

    def test_dry_run_with_unknown_arguments(
        self, runner, config_path, fake_remote, mock_transport
    ):
        """Unknown arguments are ignored."""
        result = runner.invoke(
            main,
            ["--config", str(config_path), "--dry-run", "--frobnicate", "extra"],
        )

        assert result.exit_code == 0
        assert fake_remote.mutations == 0
        assert fake_remote.commands == []

    def test_dry_run_reports_pending_deletion(
        self, runner, config_path, project_dir, fake_remote, mock_transport
    ):
        """Dry run without backup leaves the remote untouched."""
        fake_remote.add_file(f"{REMOTE_ROOT}/stale.php", b"old", mtime=1)

        result = runner.invoke(
            main, ["--config", str(config_path), "--dry-run", "--no-backup"]
        )

        assert result.exit_code == 0
        assert "- stale.php" in result.output
        assert fake_remote.relative_files(REMOTE_ROOT) == {"stale.php"}
        assert fake_remote.mutations == 0
        assert not (project_dir / "backups").exists()

    def test_deploy_without_backup(
        self, runner, config_path, project_dir, fake_remote, mock_transport
    ):
        result = runner.invoke(main, ["--config", str(config_path), "--no-backup"])

        assert result.exit_code == 0
        assert fake_remote.relative_files(REMOTE_ROOT) == {"my-plugin.php"}
        assert not (project_dir / "backups").exists()
        assert fake_remote.closed

    def test_deploy_with_backup(
        self, runner, config_path, project_dir, fake_remote, mock_transport
    ):
        result = runner.invoke(main, ["--config", str(config_path), "--quiet"])

        assert result.exit_code == 0
        archives = list((project_dir / "backups").glob("my-plugin_v0.9_*.zip"))
        assert len(archives) == 1
        assert fake_remote.relative_files(REMOTE_ROOT) == {"my-plugin.php"}

    def test_config_from_environment(
        self, runner, config_path, fake_remote, mock_transport
    ):
        result = runner.invoke(
            main,
            ["--dry-run"],
            env={"WPSYNC_CONFIG": str(config_path)},
        )

        assert result.exit_code == 0
        target = mock_transport.call_args[0][0]
        assert target.resolved_remote_dir == REMOTE_ROOT

    def test_failure_exit_code(self, runner, config_path, fake_remote, mock_transport):
        fake_remote.unreachable = True

        result = runner.invoke(main, ["--config", str(config_path), "--no-backup"])

        assert result.exit_code == 1

    def test_json_output(self, runner, config_path, fake_remote, mock_transport):
        result = runner.invoke(
            main, ["--config", str(config_path), "--dry-run", "--json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["state"] == "reported"
        assert data["report"]["dry_run"] is True
        assert data["report"]["changes"] == [
            {"path": "my-plugin.php", "classification": "created", "size": 25}
        ]
