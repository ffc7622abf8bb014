"""Backend command gateway for git stash operations.

Every operation runs one or two git commands synchronously and returns a
``BackendResult``. Backend failures are reported as ``CommandFailure``
values, never raised, so the caller can always show git's own output.
"""

from __future__ import annotations

import ast
import logging
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

from .models import FileChange, StashEntry
from .subprocess_helpers import combined_output, format_command_string, run_command

logger = logging.getLogger(__name__)

T = TypeVar("T")

STASH_LIST_FORMAT = "--pretty=format:%gd|%gs|%cr"
STASH_FIELD_SEPARATOR = "|"
STATUS_MIN_LINE_LENGTH = 4
STATUS_PATH_COLUMN = 3
DEFAULT_TIMEOUT_SECONDS = 120


@dataclass(frozen=True)
class CommandFailure:
    """A git command that failed, with everything needed to diagnose it."""

    operation: str
    exit_code: int | None
    output: str

    def describe(self) -> str:
        """One-line summary suitable for a status bar."""
        if self.exit_code is None:
            return f"{self.operation} could not run"
        return f"{self.operation} exited with status {self.exit_code}"


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """Value produced by a gateway operation plus an optional failure."""

    value: T
    failure: CommandFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def _unquote_path(path: str) -> str:
    """Undo git's C-style quoting of unusual paths."""
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        try:
            raw = ast.literal_eval("b" + path)
            return raw.decode("utf-8", errors="replace")
        except (SyntaxError, ValueError):
            return path[1:-1]
    return path


def parse_stash_list(text: str) -> list[StashEntry]:
    """Parse ``reference|message|relative-age`` records.

    Records without exactly three fields are skipped.
    """
    entries: list[StashEntry] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        parts = line.split(STASH_FIELD_SEPARATOR, 2)
        if len(parts) != 3:
            logger.debug(f"Skipping malformed stash record: {line!r}")
            continue
        reference, message, relative_age = parts
        entries.append(StashEntry(reference=reference, message=message, relative_age=relative_age))
    return entries


def parse_status_lines(text: str) -> list[FileChange]:
    """Parse ``git status --porcelain`` output into file changes.

    Column 0 is the staged status, column 1 the unstaged status and the
    path starts at column 3. A path changed on both sides yields two
    records. Untracked files yield a single unstaged record with status
    ``?``; ignored files are skipped.
    """
    changes: list[FileChange] = []
    for line in text.splitlines():
        if len(line) < STATUS_MIN_LINE_LENGTH:
            continue

        staged_code, unstaged_code = line[0], line[1]
        path = line[STATUS_PATH_COLUMN:]

        if staged_code == "!" and unstaged_code == "!":
            continue
        if staged_code in "RC" and " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = _unquote_path(path)

        if staged_code == "?" and unstaged_code == "?":
            changes.append(FileChange(path=path, status_code="?", staged=False))
            continue

        if staged_code != " ":
            changes.append(FileChange(path=path, status_code=staged_code, staged=True))
        if unstaged_code != " ":
            changes.append(FileChange(path=path, status_code=unstaged_code, staged=False))
    return changes


class GitBackend:
    """Runs git stash and working-tree commands inside one repository."""

    def __init__(
        self,
        repo_path: Path,
        git_command: Iterable[str] = ("git",),
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the backend.

        Args:
            repo_path: Repository working directory
            git_command: Executable (plus fixed leading args) used for git
            timeout: Seconds before a single git command is abandoned
        """
        self.repo_path = repo_path
        self.git_command = tuple(git_command)
        self.timeout = timeout

    def _execute(
        self, operation: str, args: list[str], ok_codes: tuple[int, ...] = (0,)
    ) -> tuple[subprocess.CompletedProcess[str] | None, CommandFailure | None]:
        """Run one git command, returning the finished process and failure (if any)."""
        command = [*self.git_command, *args]
        try:
            result = run_command(command, cwd=self.repo_path, timeout=self.timeout)
        except FileNotFoundError as err:
            logger.error(f"{operation}: executable not found: {err}")
            return None, CommandFailure(operation, None, str(err))
        except subprocess.TimeoutExpired:
            message = f"Timed out after {self.timeout}s: {format_command_string(command)}"
            logger.error(f"{operation}: {message}")
            return None, CommandFailure(operation, None, message)
        except OSError as err:
            logger.error(f"{operation}: failed to start: {err}")
            return None, CommandFailure(operation, None, str(err))

        if result.returncode not in ok_codes:
            logger.warning(
                f"{operation} failed with exit code {result.returncode}",
                extra={"extra_context": {"command": format_command_string(command)}},
            )
            return result, CommandFailure(operation, result.returncode, combined_output(result))
        return result, None

    def _run(
        self, operation: str, args: list[str], ok_codes: tuple[int, ...] = (0,)
    ) -> tuple[str, CommandFailure | None]:
        """Run one git command, returning its combined output and failure (if any)."""
        result, failure = self._execute(operation, args, ok_codes)
        if result is None:
            return "", failure
        return combined_output(result), failure

    def list_stashes(self) -> BackendResult[list[StashEntry]]:
        """List stash entries, newest first."""
        result, failure = self._execute("git stash list", ["stash", "list", STASH_LIST_FORMAT])
        if failure is not None or result is None:
            return BackendResult([], failure)
        return BackendResult(parse_stash_list(result.stdout or ""))

    def show_stash_diff(self, reference: str) -> BackendResult[str]:
        """Return the colored patch of a stash.

        On failure the output is kept both as the value and on the failure.
        """
        output, failure = self._run(
            "git stash show", ["stash", "show", "-p", "--color=always", reference]
        )
        return BackendResult(output, failure)

    def drop_stash(self, reference: str) -> BackendResult[str]:
        output, failure = self._run("git stash drop", ["stash", "drop", reference])
        return BackendResult(output, failure)

    def apply_stash(self, reference: str) -> BackendResult[str]:
        output, failure = self._run("git stash apply", ["stash", "apply", reference])
        return BackendResult(output, failure)

    def scan_working_tree(self) -> BackendResult[list[FileChange]]:
        """List staged, unstaged and untracked changes."""
        result, failure = self._execute("git status", ["status", "--porcelain"])
        if failure is not None or result is None:
            return BackendResult([], failure)
        return BackendResult(parse_status_lines(result.stdout or ""))

    def diff_file(self, path: str, staged: bool, untracked: bool = False) -> BackendResult[str]:
        """Return the colored diff of one path.

        Untracked files are diffed against /dev/null; ``--no-index`` exits
        with 1 when differences exist, which is not a failure.
        """
        if untracked:
            args = ["diff", "--no-index", "--color=always", "--", "/dev/null", path]
            output, failure = self._run("git diff", args, ok_codes=(0, 1))
        else:
            args = ["diff", "--color=always"]
            if staged:
                args.append("--cached")
            args.extend(["--", path])
            output, failure = self._run("git diff", args)
        return BackendResult(output, failure)

    def create_stash(self, paths: Iterable[str], message: str) -> BackendResult[str]:
        """Stash only the given paths under ``message``."""
        args = ["stash", "push", "-m", message, "--", *sorted(paths)]
        output, failure = self._run("git stash push", args)
        return BackendResult(output, failure)

    def restore_working_tree(self) -> BackendResult[str]:
        """Discard tracked modifications, then remove untracked files.

        The clean phase only runs when the reset phase succeeded.
        """
        reset_output, reset_failure = self._run("git reset --hard", ["reset", "--hard"])
        if reset_failure is not None:
            return BackendResult(reset_output, reset_failure)

        clean_output, clean_failure = self._run("git clean -fd", ["clean", "-fd"])
        output = reset_output + clean_output
        if clean_failure is not None:
            return BackendResult(
                output,
                CommandFailure(clean_failure.operation, clean_failure.exit_code, output),
            )
        return BackendResult(output)
