"""Full-screen error view shown when the initial stash list cannot be loaded."""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from ...utils import Theme


def render_error_view(error_text: str, theme: Theme) -> Panel:
    """Build Rich Panel explaining the startup failure.

    Args:
        error_text: Failure summary and git output
        theme: Styles to draw with

    Returns:
        Rich Panel component filling the screen
    """
    body = Group(
        Text("Could not load stashes.", style=theme.error),
        Text(""),
        Text.from_ansi(error_text),
        Text(""),
        Text("Fix the problem and restart. Press q to quit.", style=theme.muted),
    )
    return Panel(body, title="Error", border_style=theme.danger_border, padding=(1, 2))
