"""List panel renderer for stash entries and working-tree changes.

This module provides the render_item_list function that draws any sequence
of list items (anything with title/subtitle) with a highlighted cursor row
and an optional selection marker, scrolled so the cursor stays visible.
"""

from __future__ import annotations

from collections.abc import Container, Sequence
from dataclasses import dataclass

from rich.panel import Panel
from rich.text import Text

from ...utils import Theme
from ..models import FileChange, ListItem


@dataclass
class ListViewport:
    """Metadata about the visible window of the list."""

    offset: int  # First visible item index
    visible_items: int  # Number of items rendered
    hidden_above: int
    hidden_below: int


def compute_viewport(total: int, cursor: int, rows: int) -> ListViewport:
    """Pick the window of items to render so the cursor is visible.

    Args:
        total: Number of items in the list
        cursor: Index of the highlighted item
        rows: Rows available for items

    Returns:
        ListViewport describing the visible window
    """
    rows = max(1, rows)
    if total <= rows:
        return ListViewport(offset=0, visible_items=total, hidden_above=0, hidden_below=0)

    offset = min(max(0, cursor - rows // 2), total - rows)
    return ListViewport(
        offset=offset,
        visible_items=rows,
        hidden_above=offset,
        hidden_below=total - offset - rows,
    )


def _item_style(item: ListItem, theme: Theme) -> str:
    if isinstance(item, FileChange):
        return theme.staged if item.staged else theme.unstaged
    return ""


def render_item_list(
    items: Sequence[ListItem],
    cursor: int,
    rows: int,
    theme: Theme,
    title: str,
    selected: Container[str] | None = None,
    empty_text: str = "Nothing to show",
    focused: bool = True,
) -> Panel:
    """Build Rich Panel listing items with the cursor row highlighted.

    Args:
        items: Items exposing title/subtitle
        cursor: Index of the highlighted item
        rows: Rows available inside the panel border
        theme: Styles to draw with
        title: Panel title
        selected: Titles of items that carry a selection marker (Build mode)
        empty_text: Text shown when there are no items
        focused: Whether the list currently receives navigation keys

    Returns:
        Rich Panel component ready for rendering
    """
    border_style = theme.active_border if focused else theme.border

    if not items:
        body = Text(empty_text, style=f"{theme.muted} italic", justify="center")
        return Panel(body, title=title, border_style=border_style)

    viewport = compute_viewport(len(items), cursor, rows)
    body = Text(no_wrap=True, overflow="ellipsis")

    for index in range(viewport.offset, viewport.offset + viewport.visible_items):
        item = items[index]
        line = Text(no_wrap=True, overflow="ellipsis")

        if selected is not None:
            marker = "● " if item.title in selected else "○ "
            line.append(marker, style=theme.selected if item.title in selected else theme.muted)

        line.append(item.title, style=_item_style(item, theme))
        if item.subtitle:
            line.append(f"  {item.subtitle}", style=theme.muted)

        if index == cursor:
            line.stylize(theme.highlight)

        if index > viewport.offset:
            body.append("\n")
        body.append_text(line)

    subtitle = None
    if viewport.hidden_above or viewport.hidden_below:
        subtitle = f"{cursor + 1}/{len(items)}"

    return Panel(body, title=title, subtitle=subtitle, border_style=border_style)
