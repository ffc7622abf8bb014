"""Subprocess helpers used by the git backend.

This module centralizes command execution so every git call runs with the
same environment, encoding and error handling. The TUI needs termios, so
only POSIX platforms are supported.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def format_command_string(command: list[str] | tuple[str, ...]) -> str:
    """Format command as a POSIX shell-quoted string for logs and messages.

    Args:
        command: Command as list or tuple

    Returns:
        Properly quoted command string suitable for display or shell execution

    Examples:
        >>> format_command_string(["git", "stash", "push", "-m", "wip fix"])
        "git stash push -m 'wip fix'"
    """
    return shlex.join(command)


def _get_git_env() -> dict[str, str]:
    """Get environment that keeps git from paging or prompting.

    Returns:
        Environment dict with pager and terminal prompts disabled
    """
    env = os.environ.copy()
    env["GIT_PAGER"] = "cat"
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_command(
    command: list[str] | tuple[str, ...],
    *,
    cwd: Path | str | None = None,
    timeout: int | None = None,
) -> subprocess.CompletedProcess[str]:
    """subprocess.run() wrapper that never raises on exit status.

    Stdout and stderr are captured separately and decoded as UTF-8 with
    error replacement, so binary noise in diffs never raises.

    Args:
        command: Command as list or tuple
        cwd: Working directory (optional)
        timeout: Timeout in seconds (optional)

    Returns:
        CompletedProcess with text output

    Raises:
        FileNotFoundError: If executable not found
        subprocess.TimeoutExpired: If timeout specified and exceeded
    """
    logger.debug(f"Running command: {format_command_string(command)}")

    return subprocess.run(
        command,
        cwd=cwd,
        timeout=timeout,
        check=False,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        shell=False,
        env=_get_git_env(),
    )


def combined_output(result: subprocess.CompletedProcess[str]) -> str:
    """Join stdout and stderr of a finished process into one display string."""
    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if stdout and stderr and not stdout.endswith("\n"):
        return f"{stdout}\n{stderr}"
    return stdout + stderr
