"""Tests pour l'exécution des commandes externes."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from theme_sync.system.sync_system_commands import EXIT_NOT_FOUND, CommandResult, resolve_executable, run_command


class TestCommandResult:
    """Tests pour CommandResult."""

    def test_ok(self):
        assert CommandResult(0, "", "").ok
        assert not CommandResult(1, "", "").ok
        assert not CommandResult(0, "", "", timed_out=True).ok

    def test_frozen(self):
        result = CommandResult(0, "", "")
        with pytest.raises(AttributeError):
            result.returncode = 1


class TestResolveExecutable:
    """Tests pour resolve_executable."""

    @patch("theme_sync.system.sync_system_commands.shutil.which")
    def test_extra_dirs_appended(self, mock_which, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin")
        mock_which.return_value = "/opt/spicetify/spicetify"

        assert resolve_executable("spicetify", [Path("/opt/spicetify")]) == "/opt/spicetify/spicetify"

        args, kwargs = mock_which.call_args
        assert args[0] == "spicetify"
        assert kwargs["path"].startswith("/usr/bin")
        assert "/opt/spicetify" in kwargs["path"]

    @patch("theme_sync.system.sync_system_commands.shutil.which", return_value=None)
    def test_not_found(self, _mock_which):
        assert resolve_executable("nope") is None


class TestRunCommand:
    """Tests pour run_command."""

    @patch("theme_sync.system.sync_system_commands.subprocess.run")
    def test_success(self, mock_run):
        mock_result = MagicMock()
        mock_result.returncode = 0
        mock_result.stdout = "ok"
        mock_result.stderr = ""
        mock_run.return_value = mock_result

        result = run_command(["spicetify", "apply"], timeout=5)

        assert result == CommandResult(0, "ok", "")
        mock_run.assert_called_once_with(
            ["spicetify", "apply"], capture_output=True, text=True, check=False, timeout=5
        )

    @patch("theme_sync.system.sync_system_commands.subprocess.run")
    def test_failure_keeps_stderr(self, mock_run):
        mock_result = MagicMock()
        mock_result.returncode = 2
        mock_result.stdout = ""
        mock_result.stderr = "error: no theme"
        mock_run.return_value = mock_result

        result = run_command(["spicetify", "apply"])

        assert result.returncode == 2
        assert not result.ok
        assert result.stderr == "error: no theme"

    @patch("theme_sync.system.sync_system_commands.subprocess.run", side_effect=FileNotFoundError("x"))
    def test_not_found(self, _mock_run):
        result = run_command(["missing-tool"])
        assert result.returncode == EXIT_NOT_FOUND
        assert "missing-tool" in result.stderr

    @patch(
        "theme_sync.system.sync_system_commands.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="spicetify", timeout=3),
    )
    def test_timeout(self, _mock_run):
        result = run_command(["spicetify", "apply"], timeout=3)
        assert result.timed_out
        assert not result.ok
