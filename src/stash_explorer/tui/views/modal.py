"""Modal dialog renderer for confirmations and the stash message prompt."""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from ...utils import Theme
from ..models import AppState, Modal


def _confirm_body(question: str, detail: str | None, theme: Theme) -> Group:
    lines: list[Text] = [Text(question, style="bold")]
    if detail:
        lines.append(Text(detail, style=theme.muted))
    hint = Text()
    hint.append("y", style=theme.accent)
    hint.append(" confirm  ", style=theme.muted)
    hint.append("n/Esc", style=theme.accent)
    hint.append(" cancel", style=theme.muted)
    lines.append(Text(""))
    lines.append(hint)
    return Group(*lines)


def render_modal(state: AppState, theme: Theme) -> Panel | None:
    """Build Rich Panel for the active modal.

    Args:
        state: Application state (active modal, pending target, input text)
        theme: Styles to draw with

    Returns:
        Rich Panel, or None when no modal is active
    """
    modal = state.active_modal
    if modal is Modal.NONE:
        return None

    if modal is Modal.DELETE_CONFIRM:
        body = _confirm_body(
            f"Drop {state.pending_reference}?", "This cannot be undone.", theme
        )
        return Panel(body, title="Drop stash", border_style=theme.danger_border)

    if modal is Modal.APPLY_CONFIRM:
        body = _confirm_body(
            f"Apply {state.pending_reference} to the working tree?", None, theme
        )
        return Panel(body, title="Apply stash", border_style=theme.modal_border)

    if modal is Modal.RESTORE_CONFIRM:
        body = _confirm_body(
            "Discard all changes and remove untracked files?",
            "Runs git reset --hard, then git clean -fd.",
            theme,
        )
        return Panel(body, title="Restore working tree", border_style=theme.danger_border)

    count = len(state.selected_files)
    prompt = Text()
    prompt.append("> ", style=theme.accent)
    prompt.append(state.message_input.value)
    prompt.append("█", style=theme.accent)
    hint = Text()
    hint.append("Enter", style=theme.accent)
    hint.append(" stash  ", style=theme.muted)
    hint.append("Esc", style=theme.accent)
    hint.append(" cancel", style=theme.muted)
    body = Group(Text(f"Message for stash of {count} file(s):", style="bold"), prompt, Text(""), hint)
    return Panel(body, title="New stash", border_style=theme.modal_border)
