"""Tests for subprocess helpers."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

from stash_explorer.subprocess_helpers import (
    _get_git_env,
    combined_output,
    format_command_string,
    run_command,
)


class TestFormatCommandString:
    """Tests for format_command_string."""

    def test_posix_quoting(self) -> None:
        result = format_command_string(["git", "stash", "push", "-m", "wip fix"])

        assert result == "git stash push -m 'wip fix'"

    def test_accepts_tuple(self) -> None:
        assert format_command_string(("git", "status")) == "git status"


class TestRunCommand:
    """Tests for run_command."""

    def test_git_env_disables_pager(self) -> None:
        env = _get_git_env()

        assert env["GIT_PAGER"] == "cat"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_posix_invocation(self, tmp_path) -> None:
        """Commands run without a shell and never raise on exit status."""
        completed = subprocess.CompletedProcess(["git"], 1, stdout="", stderr="err")
        with patch("subprocess.run", return_value=completed) as mock_run:
            result = run_command(["git", "status"], cwd=tmp_path, timeout=5)

        assert result is completed
        args, kwargs = mock_run.call_args
        assert args[0] == ["git", "status"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 5
        assert kwargs["check"] is False
        assert kwargs["shell"] is False
        assert kwargs["errors"] == "replace"
        assert kwargs["env"]["GIT_PAGER"] == "cat"

    def test_never_uses_shell(self) -> None:
        """The argument list is passed straight through regardless of platform."""
        completed = subprocess.CompletedProcess(["git"], 0, stdout="", stderr="")
        with patch("platform.system", return_value="Windows"), \
             patch("subprocess.run", return_value=completed) as mock_run:
            run_command(["git", "stash", "push", "-m", "wip fix"])

        assert mock_run.call_args.args[0] == ["git", "stash", "push", "-m", "wip fix"]
        assert mock_run.call_args.kwargs["shell"] is False


class TestCombinedOutput:
    """Tests for combined_output."""

    def test_joins_streams(self) -> None:
        result = subprocess.CompletedProcess([], 0, stdout="out\n", stderr="err\n")

        assert combined_output(result) == "out\nerr\n"

    def test_adds_missing_newline(self) -> None:
        result = subprocess.CompletedProcess([], 0, stdout="out", stderr="err")

        assert combined_output(result) == "out\nerr"

    def test_none_streams(self) -> None:
        result = subprocess.CompletedProcess([], 0, stdout=None, stderr=None)

        assert combined_output(result) == ""
