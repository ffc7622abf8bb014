"""State data models for TUI application.

This module contains the UI enums, the text input buffer and the application
state owned by the state machine. The backend records (stash entries and
working tree changes) live in ``stash_explorer.models`` and are re-exported
here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..models import FileChange, StashEntry
from .tui_utils import PanelDimensions

__all__ = [
    "AppState",
    "FileChange",
    "ListItem",
    "Modal",
    "Mode",
    "StashEntry",
    "TextInput",
    "clamp_index",
]


class Mode(Enum):
    """Top-level UI mode."""

    EXPLORE = "explore"
    BUILD = "build"


class Modal(Enum):
    """Input-exclusive overlay currently shown, if any."""

    NONE = "none"
    DELETE_CONFIRM = "delete_confirm"
    APPLY_CONFIRM = "apply_confirm"
    STASH_MESSAGE = "stash_message"
    RESTORE_CONFIRM = "restore_confirm"


class ListItem(Protocol):
    """Capabilities shared by everything shown in the list panel."""

    @property
    def title(self) -> str: ...

    @property
    def subtitle(self) -> str: ...

    @property
    def filter_key(self) -> str: ...


@dataclass
class TextInput:
    """Single-line text buffer backing the stash message dialog."""

    value: str = ""
    max_length: int = 200

    def insert(self, text: str) -> bool:
        """Append printable text, returning False when nothing was accepted."""
        if not text or not text.isprintable():
            return False
        room = self.max_length - len(self.value)
        if room <= 0:
            return False
        self.value += text[:room]
        return True

    def backspace(self) -> None:
        self.value = self.value[:-1]

    def clear(self) -> None:
        self.value = ""

    @property
    def is_blank(self) -> bool:
        return not self.value.strip()


def clamp_index(index: int, length: int) -> int:
    """Clamp a list cursor into ``[0, length - 1]`` (0 for empty lists)."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))


@dataclass
class AppState:
    """Complete UI state, written only by the state machine.

    The three per-file maps (``selected_files``, ``expanded``, ``diff_cache``)
    are keyed by path. ``expanded`` always mirrors the keys of
    ``selected_files``; ``diff_cache`` holds a subset of them until every
    pending diff fetch has completed.
    """

    mode: Mode = Mode.EXPLORE
    active_modal: Modal = Modal.NONE
    loading: bool = False
    last_error: str | None = None
    bootstrap_error: str | None = None
    status_message: str | None = None

    # Explore mode
    stashes: list[StashEntry] = field(default_factory=list)
    stash_cursor: int = 0
    stashes_loaded: bool = False
    list_generation: int = 0
    shown_reference: str | None = None
    explore_text: str = ""
    pending_reference: str | None = None

    # Build mode
    files: list[FileChange] = field(default_factory=list)
    file_cursor: int = 0
    selected_files: dict[str, FileChange] = field(default_factory=dict)
    expanded: dict[str, bool] = field(default_factory=dict)
    diff_cache: dict[str, str] = field(default_factory=dict)
    build_notice: str | None = None

    message_input: TextInput = field(default_factory=TextInput)
    diff_scroll: int = 0
    dimensions: PanelDimensions = field(default_factory=PanelDimensions)

    @property
    def selected_stash(self) -> StashEntry | None:
        """Return the stash under the list cursor."""
        if not self.stashes:
            return None
        return self.stashes[clamp_index(self.stash_cursor, len(self.stashes))]

    @property
    def highlighted_file(self) -> FileChange | None:
        """Return the working-tree change under the list cursor."""
        if not self.files:
            return None
        return self.files[clamp_index(self.file_cursor, len(self.files))]

    def clear_selection(self) -> None:
        """Drop all Build-mode per-file state together."""
        self.selected_files.clear()
        self.expanded.clear()
        self.diff_cache.clear()

    def per_file_keys_consistent(self) -> bool:
        """Check that no expansion or diff entry outlives its selection."""
        selected = set(self.selected_files)
        return set(self.expanded) == selected and set(self.diff_cache) <= selected

    def selection_diff_text(self) -> str:
        """Compose the combined diff of all selected files.

        Collapsed files contribute only their header line.
        """
        blocks: list[str] = []
        if self.build_notice:
            blocks.append(self.build_notice)
        for path in sorted(self.selected_files):
            change = self.selected_files[path]
            is_expanded = self.expanded.get(path, False)
            marker = "▾" if is_expanded else "▸"
            blocks.append(f"{marker} {path} ({change.subtitle})")
            if not is_expanded:
                continue
            if path not in self.diff_cache:
                blocks.append("  Loading diff...")
            else:
                blocks.append(self.diff_cache[path].rstrip("\n") or "  (no textual changes)")
        return "\n".join(blocks)

    def panel_text(self) -> str:
        """Text currently shown in the diff panel for the active mode."""
        if self.mode is Mode.BUILD:
            return self.selection_diff_text()
        return self.explore_text
