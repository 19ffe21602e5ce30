"""Tests pour le parsing CLI, les chemins et le logging."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from theme_sync.config.sync_config_logging import add_file_logging, configure_logging
from theme_sync.config.sync_config_runtime import parse_cli, parse_verbosity_flags
from theme_sync.config.sync_paths import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    first_existing_dir,
    get_config_path,
)


class TestParseVerbosityFlags:
    """Tests pour parse_verbosity_flags."""

    def test_no_flags(self):
        debug, verbose, remaining = parse_verbosity_flags(["once"])
        assert debug is False
        assert verbose is False
        assert remaining == ["once"]

    def test_both_flags(self):
        debug, verbose, remaining = parse_verbosity_flags(["--verbose", "once", "--debug"])
        assert debug is True
        assert verbose is True
        assert remaining == ["once"]


class TestParseCli:
    """Tests pour parse_cli."""

    def test_command_only(self):
        options = parse_cli(["watch"])
        assert options.command == "watch"
        assert options.unknown == ()

    def test_config_separate_value(self):
        options = parse_cli(["--config", "/tmp/c.toml", "once"])
        assert options.config_path == "/tmp/c.toml"
        assert options.command == "once"

    def test_config_equals_value(self):
        assert parse_cli(["--config=/tmp/c.toml", "status"]).config_path == "/tmp/c.toml"

    def test_config_without_value(self):
        options = parse_cli(["once", "--config"])
        assert options.config_path is None
        assert options.unknown == ("--config",)

    def test_force_flag(self):
        options = parse_cli(["init-config", "--force"])
        assert options.command == "init-config"
        assert options.force is True

    def test_unknown_command(self):
        options = parse_cli(["explode"])
        assert options.command is None
        assert options.unknown == ("explode",)

    def test_second_command_is_unknown(self):
        options = parse_cli(["once", "watch"])
        assert options.command == "once"
        assert options.unknown == ("watch",)


class TestConfigPath:
    """Tests pour get_config_path et first_existing_dir."""

    def test_explicit_wins(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/env/config.toml")
        assert get_config_path("~/explicit.toml") == Path.home() / "explicit.toml"

    def test_env_var(self, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, "/env/config.toml")
        assert get_config_path() == Path("/env/config.toml")

    def test_default(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert get_config_path() == DEFAULT_CONFIG_PATH

    def test_first_existing_dir(self, tmp_path):
        (tmp_path / "b").mkdir()
        assert first_existing_dir([tmp_path / "a", tmp_path / "b"]) == tmp_path / "b"
        assert first_existing_dir([tmp_path / "a"]) is None


class TestConfigureLogging:
    """Tests pour configure_logging / add_file_logging."""

    def test_silent_by_default(self):
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            configure_logging(debug=False, verbose=False)
        mock_logger.remove.assert_called_once()
        mock_logger.add.assert_not_called()

    def test_debug_level(self):
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            configure_logging(debug=True)
        _, kwargs = mock_logger.add.call_args
        assert kwargs["level"] == "DEBUG"
        assert kwargs["backtrace"] is True

    def test_verbose_level(self):
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            configure_logging(debug=False, verbose=True)
        _, kwargs = mock_logger.add.call_args
        assert kwargs["level"] == "INFO"

    def test_file_logging_rotation(self, tmp_path):
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            add_file_logging(tmp_path / "logs")
        assert (tmp_path / "logs").is_dir()
        _, kwargs = mock_logger.add.call_args
        assert kwargs["rotation"] == "10 MB"
        assert kwargs["retention"] == "7 days"

    def test_file_logging_best_effort(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            add_file_logging(blocker / "logs")
        mock_logger.add.assert_not_called()
        mock_logger.warning.assert_called_once()

    def test_log_dir_adds_file_sink_without_console(self, tmp_path):
        """Mode watch sans flag: seul le fichier rotatif est actif."""
        with patch("theme_sync.config.sync_config_logging.logger") as mock_logger:
            configure_logging(debug=False, verbose=False, log_dir=tmp_path / "logs")
        assert mock_logger.add.call_count == 1
        args, kwargs = mock_logger.add.call_args
        assert str(args[0]).startswith(str(tmp_path / "logs"))
        assert kwargs["level"] == "INFO"
