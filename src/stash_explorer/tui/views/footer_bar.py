"""Footer bar renderer for status indicators.

This module provides the render_footer_bar function that displays
a status bar with the latest message, error text, and key hints.
"""

from __future__ import annotations

from rich.text import Text

from ...utils import Theme
from ..models import Mode
from ..tui_utils import truncate_text

EXPLORE_HINTS = "Enter show · a apply · d drop · Tab build · q quit"
BUILD_HINTS = "Enter select · Space expand · s stash · r restore · Tab explore · q quit"


def render_footer_bar(
    mode: Mode,
    theme: Theme,
    status_message: str | None = None,
    error_message: str | None = None,
    terminal_width: int = 80,
) -> Text:
    """Build Rich Text displaying footer status bar.

    Args:
        mode: Current mode, used to pick the key hints
        theme: Styles to draw with
        status_message: Latest feedback message, if any
        error_message: Current error message to display, if any
        terminal_width: Terminal width for truncation calculations

    Returns:
        Rich Text component ready for rendering
    """
    hints = EXPLORE_HINTS if mode is Mode.EXPLORE else BUILD_HINTS
    parts: list[tuple[str, str]] = []

    # Reserve space for the key hints; messages share the rest
    available_width = terminal_width - len(hints) - 3

    if error_message and available_width > 10:
        truncated_error = truncate_text(error_message, available_width)
        parts.append((truncated_error, theme.error))
        parts.append((" | ", theme.muted))
        available_width -= len(truncated_error) + 3

    if status_message and available_width > 10:
        parts.append((truncate_text(status_message, available_width), theme.success))
        parts.append((" | ", theme.muted))

    parts.append((hints, theme.accent))

    footer = Text(no_wrap=True, overflow="ellipsis")
    for text, style in parts:
        footer.append(text, style=style)

    return footer
