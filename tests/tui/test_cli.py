"""Tests for CLI argument parsing, config resolution and logging."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from stash_explorer.tui import cli
from stash_explorer.tui.cli import JSONFormatter, _parse_args, _resolve_config, main
from stash_explorer.tui.exceptions import ConfigError, TerminalError


class TestParseArgs:
    """Tests for _parse_args."""

    def test_defaults(self):
        args = _parse_args([])

        assert args.repo is None
        assert args.config is None
        assert args.debug is False

    def test_all_options(self, tmp_path):
        args = _parse_args(["--repo", str(tmp_path), "--config", "cfg.json", "--debug"])

        assert args.repo == tmp_path
        assert args.config == Path("cfg.json")
        assert args.debug is True


class TestResolveConfig:
    """Tests for _resolve_config."""

    def test_explicit_missing_config_fails(self, tmp_path):
        """A config path given on the command line must exist."""
        args = _parse_args(["--config", str(tmp_path / "missing.json")])

        with pytest.raises(ConfigError, match="Config file not found"):
            _resolve_config(args)

    def test_default_config_optional(self, tmp_path):
        """Without a config file the defaults are used."""
        args = _parse_args([])

        with patch.object(cli, "DEFAULT_CONFIG_PATH", tmp_path / "none.json"):
            config = _resolve_config(args)

        assert config.repo_path == Path(".").resolve()
        assert config.git_command == ("git",)

    def test_repo_flag_overrides_config(self, tmp_path):
        """--repo wins over repo_path from the file."""
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"repo_path": "/somewhere/else"}), encoding="utf-8")
        repo = tmp_path / "repo"
        repo.mkdir()

        config = _resolve_config(_parse_args(["--config", str(config_file), "--repo", str(repo)]))

        assert config.repo_path == repo.resolve()

    def test_invalid_config_raises(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError):
            _resolve_config(_parse_args(["--config", str(config_file)]))


class TestJSONFormatter:
    """Tests for the structured log formatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="stash_explorer.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=42,
            msg="Stash dropped",
            args=(),
            exc_info=None,
            func="test_func",
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        payload = json.loads(JSONFormatter().format(self._record()))

        assert payload["level"] == "INFO"
        assert payload["event"] == "Stash dropped"
        assert payload["context"]["line"] == 42
        assert payload["context"]["function"] == "test_func"
        assert "thread" in payload["context"]

    def test_extra_context_merged(self):
        """Values passed through extra_context land in the context object."""
        record = self._record(extra_context={"reference": "stash@{0}"})

        payload = json.loads(JSONFormatter().format(record))

        assert payload["context"]["reference"] == "stash@{0}"


class TestMain:
    """Tests for the main entry point."""

    def test_config_error_exit_code(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.json")]) == 1

    def test_missing_repo_exit_code(self, tmp_path):
        with patch.object(cli, "_setup_logging"):
            assert main(["--repo", str(tmp_path / "nope")]) == 1

    def test_runs_app_and_shuts_down(self, tmp_path):
        """The app runs and is always shut down afterwards."""
        app = MagicMock()
        app.run.return_value = 0

        with patch.object(cli, "_setup_logging"), \
             patch.object(cli, "TUIApp", return_value=app), \
             patch("signal.signal"):
            exit_code = main(["--repo", str(tmp_path)])

        assert exit_code == 0
        app.shutdown.assert_called_once_with(timeout=2.0)

    def test_terminal_error(self, tmp_path):
        """Running without a terminal exits with an error."""
        app = MagicMock()
        app.run.side_effect = TerminalError("not a tty")

        with patch.object(cli, "_setup_logging"), \
             patch.object(cli, "TUIApp", return_value=app), \
             patch("signal.signal"):
            assert main(["--repo", str(tmp_path)]) == 1

        app.shutdown.assert_called_once()
