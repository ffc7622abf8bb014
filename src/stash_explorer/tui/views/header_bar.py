"""Header bar renderer showing the mode tabs and activity indicator."""

from __future__ import annotations

from rich.text import Text

from ...utils import Theme
from ..models import Mode


def render_header_bar(mode: Mode, loading: bool, repo_name: str, theme: Theme) -> Text:
    """Build Rich Text with mode tabs, repository name and loading state.

    Args:
        mode: Current UI mode
        loading: Whether a blocking backend call is outstanding
        repo_name: Repository directory name
        theme: Styles to draw with

    Returns:
        Rich Text component ready for rendering
    """
    header = Text(no_wrap=True, overflow="ellipsis")
    for tab_mode, label in ((Mode.EXPLORE, " Explore "), (Mode.BUILD, " Build ")):
        if tab_mode is mode:
            header.append(label, style=f"{theme.accent} {theme.highlight}")
        else:
            header.append(label, style=theme.muted)
        header.append(" ")

    header.append(f"│ {repo_name}", style=theme.muted)
    if loading:
        header.append("  ⟳ working...", style=theme.accent)
    return header
