"""TUI utility functions for terminal handling and layout math."""

from __future__ import annotations

import shutil
import sys
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from .exceptions import TerminalError

HEADER_ROWS = 1
FOOTER_ROWS = 1
MODAL_ROWS = 7
LIST_RATIO = 3
DIFF_RATIO = 7


@dataclass(frozen=True)
class PanelDimensions:
    """Sizes of the list and diff panels for the current terminal."""

    width: int = 80
    height: int = 24
    list_width: int = 24
    diff_width: int = 56
    body_height: int = 22

    @property
    def list_rows(self) -> int:
        """Visible item rows inside the list panel border."""
        return max(1, self.body_height - 2)

    @property
    def diff_rows(self) -> int:
        """Visible text rows inside the diff panel border."""
        return max(1, self.body_height - 2)


def compute_panel_dimensions(width: int, height: int) -> PanelDimensions:
    """
    Split the terminal between header, list, diff panel and footer.

    Args:
        width: Terminal columns
        height: Terminal rows

    Returns:
        PanelDimensions for the given terminal size

    Examples:
        >>> dims = compute_panel_dimensions(100, 30)
        >>> (dims.list_width, dims.diff_width, dims.body_height)
        (30, 70, 28)
    """
    width = max(1, width)
    height = max(1, height)
    list_width = width * LIST_RATIO // (LIST_RATIO + DIFF_RATIO)
    return PanelDimensions(
        width=width,
        height=height,
        list_width=list_width,
        diff_width=width - list_width,
        body_height=max(1, height - HEADER_ROWS - FOOTER_ROWS),
    )


def truncate_text(text: str, max_len: int) -> str:
    """
    Truncate text to max length, adding ellipsis if needed.

    Args:
        text: Text to truncate
        max_len: Maximum length including ellipsis

    Returns:
        Truncated text with "..." suffix if text exceeds max_len

    Examples:
        >>> truncate_text("short", 10)
        'short'
        >>> truncate_text("this is a long text", 10)
        'this is...'
    """
    if len(text) <= max_len:
        return text

    if max_len <= 3:
        return "..."[:max_len]

    return text[: max_len - 3] + "..."


def get_terminal_size() -> tuple[int, int]:
    """
    Get terminal size as (columns, rows) tuple.

    Returns:
        Tuple of (columns, rows), defaults to (80, 24) if unavailable

    Examples:
        >>> cols, rows = get_terminal_size()
        >>> isinstance(cols, int) and isinstance(rows, int)
        True
    """
    try:
        size = shutil.get_terminal_size(fallback=(80, 24))
        return (size.columns, size.lines)
    except Exception:
        return (80, 24)


@contextmanager
def cbreak_terminal() -> Iterator[None]:
    """Put stdin into cbreak mode for single-key reads, restoring it on exit.

    Raises:
        TerminalError: If stdin is not an interactive terminal
    """
    if not sys.stdin.isatty():
        raise TerminalError("stash-explorer needs an interactive terminal on stdin")

    fd = sys.stdin.fileno()
    try:
        saved = termios.tcgetattr(fd)
    except termios.error as err:
        raise TerminalError(f"Cannot read terminal attributes: {err}") from err

    tty.setcbreak(fd)
    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
