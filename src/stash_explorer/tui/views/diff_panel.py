"""Diff panel renderer with a scrollable viewport."""

from __future__ import annotations

from rich.panel import Panel
from rich.text import Text

from ...utils import Theme


def slice_lines(text: str, offset: int, rows: int) -> tuple[list[str], int, int]:
    """Return the visible lines plus the counts hidden above and below.

    Args:
        text: Full panel text
        offset: First visible line index
        rows: Rows available for text

    Returns:
        Tuple of (visible lines, hidden above, hidden below)
    """
    lines = text.splitlines()
    rows = max(1, rows)
    offset = max(0, min(offset, max(0, len(lines) - rows)))
    visible = lines[offset : offset + rows]
    return visible, offset, max(0, len(lines) - offset - len(visible))


def render_diff_panel(
    text: str,
    scroll: int,
    rows: int,
    theme: Theme,
    title: str = "Diff",
    placeholder: str = "Nothing to show",
) -> Panel:
    """Build Rich Panel showing a window of diff text.

    ANSI colour codes from git are converted to Rich styles, so coloured
    output is shown as git printed it.

    Args:
        text: Diff or command output, possibly containing ANSI escapes
        scroll: First visible line index
        rows: Rows available inside the panel border
        theme: Styles to draw with
        title: Panel title
        placeholder: Text shown when there is nothing to display

    Returns:
        Rich Panel component ready for rendering
    """
    if not text.strip():
        body = Text(placeholder, style=f"{theme.muted} italic", justify="center")
        return Panel(body, title=title, border_style=theme.border)

    visible, hidden_above, hidden_below = slice_lines(text, scroll, rows)
    body = Text.from_ansi("\n".join(visible), no_wrap=True, overflow="crop")

    subtitle = None
    if hidden_above or hidden_below:
        subtitle = f"↑{hidden_above} ↓{hidden_below} · PgUp/PgDn"

    return Panel(body, title=title, subtitle=subtitle, border_style=theme.border)
