"""Transition logic for the stash explorer.

This module maps keyboard input, terminal resizes and background completion
events onto ``AppState`` changes, dispatching new backend work as a
consequence of transitions. It is the only writer of ``AppState``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..git_backend import CommandFailure
from .events import (
    CompletionEvent,
    FileDiffLoaded,
    StashApplied,
    StashCreated,
    StashDiffLoaded,
    StashDropped,
    StashListLoaded,
    WorkingTreeRestored,
    WorkingTreeScanned,
)
from .models import AppState, FileChange, Modal, Mode, StashEntry, clamp_index
from .tui_utils import compute_panel_dimensions

if TYPE_CHECKING:
    from .dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)

QUIT = "quit"
ESCAPE = "\x1b"
INTERRUPT = "ctrl+c"
ENTER = "enter"
SPACE = " "

CONFIRM_MODALS = (Modal.DELETE_CONFIRM, Modal.APPLY_CONFIRM, Modal.RESTORE_CONFIRM)


def _failure_text(failure: CommandFailure, output: str = "") -> str:
    """Pick the most useful text to show for a failed command."""
    text = output or failure.output
    return text.rstrip("\n") or failure.describe()


class StateMachine:
    """Owns ``AppState`` and applies every transition to it."""

    def __init__(self, state: AppState, dispatcher: TaskDispatcher) -> None:
        """Initialize state machine.

        Args:
            state: Application state to mutate
            dispatcher: Dispatcher used to start backend work
        """
        self.state = state
        self.dispatcher = dispatcher

    def bootstrap(self) -> None:
        """Start the initial stash list load."""
        self.state.loading = True
        self.dispatcher.load_stashes(bootstrap=True)

    # Keyboard input

    def handle_key(self, key: str) -> tuple[bool, str | None]:
        """Process keyboard input and execute the corresponding transition.

        Args:
            key: Key identifier (e.g., "up", "enter", "tab", "d", "ctrl+c")

        Returns:
            Tuple of (handled, message):
                - handled: True if key was recognized and handled, False otherwise
                - message: Optional feedback for the user, or "quit" to exit
        """
        handled, message = self._dispatch_key(key)
        if message is not None and message != QUIT:
            self.state.status_message = message
        return handled, message

    def _dispatch_key(self, key: str) -> tuple[bool, str | None]:
        state = self.state

        # Modal dismissal takes priority over quitting
        if key in (INTERRUPT, "q"):
            if state.active_modal is Modal.NONE:
                return True, QUIT
            return self._dismiss_modal()

        if state.active_modal in CONFIRM_MODALS:
            return self._handle_confirm_key(key)
        if state.active_modal is Modal.STASH_MESSAGE:
            return self._handle_message_key(key)

        if key == "tab":
            return self._handle_toggle_mode()
        if key == "up":
            return self._handle_move(-1)
        if key == "down":
            return self._handle_move(1)
        if key == "pgup":
            return self._handle_scroll(-1)
        if key == "pgdown":
            return self._handle_scroll(1)
        if key == ESCAPE:
            return True, None

        if state.mode is Mode.EXPLORE:
            if key == ENTER:
                return self._handle_show_stash()
            if key == "d":
                return self._handle_open_stash_modal(Modal.DELETE_CONFIRM)
            if key == "a":
                return self._handle_open_stash_modal(Modal.APPLY_CONFIRM)
        else:
            if key == ENTER:
                return self._handle_select_file()
            if key == SPACE:
                return self._handle_toggle_expansion()
            if key in ("s", "S"):
                return self._handle_open_message_modal()
            if key in ("r", "R"):
                state.active_modal = Modal.RESTORE_CONFIRM
                return True, None

        if len(key) == 1 and key.isprintable():
            return True, f"Key '{key}' not assigned"
        return False, None

    # Modal handlers

    def _dismiss_modal(self) -> tuple[bool, str | None]:
        if self.state.active_modal is Modal.STASH_MESSAGE:
            self.state.message_input.clear()
        self.state.active_modal = Modal.NONE
        self.state.pending_reference = None
        return True, None

    def _handle_confirm_key(self, key: str) -> tuple[bool, str | None]:
        """Confirm modals take exclusive input: only affirm and cancel keys act."""
        if key in ("n", "N", ESCAPE):
            return self._dismiss_modal()
        if key not in ("y", "Y"):
            return True, None

        state = self.state
        modal = state.active_modal
        reference = state.pending_reference
        state.active_modal = Modal.NONE
        state.pending_reference = None

        if modal is Modal.RESTORE_CONFIRM:
            state.loading = True
            self.dispatcher.restore_working_tree()
            logger.info("Restoring working tree")
            return True, "Restoring working tree..."

        if reference is None:
            return True, "Error: No stash selected"

        if modal is Modal.DELETE_CONFIRM:
            index = self._stash_index(reference)
            self.dispatcher.drop_stash(reference, index)
            logger.info(f"Dropping {reference} at index {index}")
            return True, f"Dropping {reference}..."

        state.loading = True
        self.dispatcher.apply_stash(reference)
        logger.info(f"Applying {reference}")
        return True, f"Applying {reference}..."

    def _handle_message_key(self, key: str) -> tuple[bool, str | None]:
        """Stash message dialog: confirm, cancel, or forward the key to the text field."""
        state = self.state
        if key == ESCAPE:
            return self._dismiss_modal()
        if key == ENTER:
            if state.message_input.is_blank:
                return True, None
            message = state.message_input.value.strip()
            paths = list(state.selected_files)
            state.message_input.clear()
            state.active_modal = Modal.NONE
            state.loading = True
            self.dispatcher.create_stash(paths, message)
            logger.info(
                "Creating stash",
                extra={"extra_context": {"paths": len(paths), "message": message}},
            )
            return True, f"Stashing {len(paths)} file(s)..."
        if key == "backspace":
            state.message_input.backspace()
            return True, None
        if len(key) == 1:
            state.message_input.insert(key)
        return True, None

    def _handle_open_stash_modal(self, modal: Modal) -> tuple[bool, str | None]:
        stash = self.state.selected_stash
        if stash is None:
            return True, "No stashes found."
        self.state.pending_reference = stash.reference
        self.state.active_modal = modal
        return True, None

    def _handle_open_message_modal(self) -> tuple[bool, str | None]:
        if not self.state.selected_files:
            return True, "Select at least one file before stashing"
        self.state.message_input.clear()
        self.state.active_modal = Modal.STASH_MESSAGE
        return True, None

    # Navigation handlers

    def _handle_toggle_mode(self) -> tuple[bool, str | None]:
        state = self.state
        state.diff_scroll = 0
        if state.mode is Mode.EXPLORE:
            state.mode = Mode.BUILD
            state.build_notice = None
            state.loading = True
            self.dispatcher.scan_working_tree()
            return True, "Build mode"

        # Build-mode work is intentionally not carried across mode switches
        state.mode = Mode.EXPLORE
        state.clear_selection()
        state.build_notice = None
        return True, "Explore mode"

    def _handle_move(self, step: int) -> tuple[bool, str | None]:
        state = self.state
        if state.mode is Mode.EXPLORE:
            state.stash_cursor = clamp_index(state.stash_cursor + step, len(state.stashes))
        else:
            state.file_cursor = clamp_index(state.file_cursor + step, len(state.files))
        return True, None

    def _handle_scroll(self, direction: int) -> tuple[bool, str | None]:
        page = max(1, self.state.dimensions.diff_rows - 1)
        self.state.diff_scroll += direction * page
        self._clamp_scroll()
        return True, None

    def _clamp_scroll(self) -> None:
        line_count = len(self.state.panel_text().splitlines())
        max_scroll = max(0, line_count - self.state.dimensions.diff_rows)
        self.state.diff_scroll = max(0, min(self.state.diff_scroll, max_scroll))

    def handle_resize(self, width: int, height: int) -> None:
        """Recompute panel dimensions; applies in every mode and modal."""
        self.state.dimensions = compute_panel_dimensions(width, height)
        self._clamp_scroll()

    # Explore mode actions

    def _stash_index(self, reference: str) -> int:
        for index, stash in enumerate(self.state.stashes):
            if stash.reference == reference:
                return index
        return self.state.stash_cursor

    def _request_stash_diff(self, stash: StashEntry) -> None:
        state = self.state
        state.shown_reference = stash.reference
        state.explore_text = f"Loading {stash.reference}..."
        state.diff_scroll = 0
        state.loading = True
        self.dispatcher.fetch_stash_diff(stash.reference, state.list_generation)

    def _handle_show_stash(self) -> tuple[bool, str | None]:
        stash = self.state.selected_stash
        if stash is None:
            return True, "No stashes found."
        self._request_stash_diff(stash)
        return True, None

    # Build mode actions

    def _select_file(self, change: FileChange) -> tuple[bool, str | None]:
        state = self.state
        state.selected_files[change.path] = change
        state.expanded[change.path] = False
        self.dispatcher.fetch_file_diff(change)
        return True, f"Selected {change.path}"

    def _handle_select_file(self) -> tuple[bool, str | None]:
        change = self.state.highlighted_file
        if change is None:
            return True, "Working tree is clean"
        if change.path not in self.state.selected_files:
            return self._select_file(change)

        self.state.selected_files.pop(change.path, None)
        self.state.expanded.pop(change.path, None)
        self.state.diff_cache.pop(change.path, None)
        self._clamp_scroll()
        return True, f"Deselected {change.path}"

    def _handle_toggle_expansion(self) -> tuple[bool, str | None]:
        change = self.state.highlighted_file
        if change is None:
            return True, "Working tree is clean"
        if change.path not in self.state.selected_files:
            return self._select_file(change)

        expanded = not self.state.expanded.get(change.path, False)
        self.state.expanded[change.path] = expanded
        self._clamp_scroll()
        return True, None

    # Completion events

    def handle_event(self, event: CompletionEvent) -> None:
        """Apply a completion event from the dispatcher."""
        logger.debug(f"Completion event: {type(event).__name__}")

        if isinstance(event, StashListLoaded):
            self._on_stash_list(event)
        elif isinstance(event, StashDiffLoaded):
            self._on_stash_diff(event)
        elif isinstance(event, StashDropped):
            self._on_stash_dropped(event)
        elif isinstance(event, StashApplied):
            self._on_stash_applied(event)
        elif isinstance(event, WorkingTreeScanned):
            self._on_working_tree_scanned(event)
        elif isinstance(event, FileDiffLoaded):
            self._on_file_diff(event)
        elif isinstance(event, StashCreated):
            self._on_stash_created(event)
        elif isinstance(event, WorkingTreeRestored):
            self._on_working_tree_restored(event)
        else:
            logger.warning(f"Ignoring unknown event {event!r}")

    def _on_stash_list(self, event: StashListLoaded) -> None:
        state = self.state
        state.loading = False

        if event.failure is not None:
            if event.bootstrap:
                logger.error(f"Initial stash list failed: {event.failure.describe()}")
                state.bootstrap_error = (
                    f"{event.failure.describe()}\n\n{_failure_text(event.failure)}"
                )
                return
            state.last_error = event.failure.describe()
            state.explore_text = _failure_text(event.failure)
            return

        state.stashes = list(event.entries)
        state.stashes_loaded = True
        state.list_generation += 1
        state.shown_reference = None

        # stash@{N} names shift with the new list, so a pending target is no longer trustworthy
        if state.active_modal in (Modal.DELETE_CONFIRM, Modal.APPLY_CONFIRM):
            logger.info(f"Stash list changed, cancelling confirmation for {state.pending_reference}")
            self._dismiss_modal()
            state.status_message = "Stash list changed; confirmation cancelled"

        if event.focus_index is not None:
            state.stash_cursor = clamp_index(event.focus_index, len(state.stashes))
        else:
            state.stash_cursor = clamp_index(state.stash_cursor, len(state.stashes))

        if not state.stashes:
            state.explore_text = "No stashes found."
            return

        stash = state.selected_stash
        if event.focus_index is not None and stash is not None:
            self._request_stash_diff(stash)

    def _on_stash_diff(self, event: StashDiffLoaded) -> None:
        state = self.state
        known = any(stash.reference == event.reference for stash in state.stashes)
        if (
            event.generation != state.list_generation
            or not known
            or event.reference != state.shown_reference
        ):
            logger.debug(f"Discarding stale diff for {event.reference}")
            return

        state.loading = False
        state.diff_scroll = 0
        if event.failure is not None:
            state.last_error = event.failure.describe()
            state.explore_text = _failure_text(event.failure, event.text)
            return
        state.last_error = None
        state.explore_text = event.text

    def _on_stash_dropped(self, event: StashDropped) -> None:
        state = self.state
        if event.failure is not None:
            state.last_error = event.failure.describe()
            state.explore_text = (
                f"Failed to drop {event.reference}:\n{_failure_text(event.failure, event.output)}"
            )
            return

        state.last_error = None
        state.status_message = f"Dropped {event.reference}"
        state.shown_reference = None
        state.explore_text = event.output
        # Indices shift after a drop, so re-read the list before showing any diff
        state.loading = True
        self.dispatcher.load_stashes(focus_index=event.index)

    def _on_stash_applied(self, event: StashApplied) -> None:
        state = self.state
        state.loading = False
        state.shown_reference = None
        state.diff_scroll = 0
        if event.failure is not None:
            state.explore_text = (
                f"Failed to apply {event.reference}:\n{_failure_text(event.failure, event.output)}"
            )
            return
        state.explore_text = f"Applied {event.reference}:\n{event.output}"

    def _on_working_tree_scanned(self, event: WorkingTreeScanned) -> None:
        state = self.state
        state.loading = False
        if event.failure is not None:
            state.last_error = event.failure.describe()
            state.build_notice = f"Failed to scan working tree:\n{_failure_text(event.failure)}"
            return
        state.files = list(event.files)
        state.file_cursor = clamp_index(state.file_cursor, len(state.files))

    def _on_file_diff(self, event: FileDiffLoaded) -> None:
        state = self.state
        change = state.selected_files.get(event.path)
        if change is None or change.staged != event.staged:
            logger.debug(f"Discarding diff for deselected {event.path}")
            return
        if event.failure is not None:
            state.diff_cache[event.path] = _failure_text(event.failure, event.text)
        else:
            state.diff_cache[event.path] = event.text

    def _on_stash_created(self, event: StashCreated) -> None:
        state = self.state
        state.loading = False
        if event.failure is not None:
            state.build_notice = (
                f"Failed to create stash:\n{_failure_text(event.failure, event.output)}"
            )
            return

        state.last_error = None
        if state.active_modal is not Modal.NONE:
            self._dismiss_modal()
        state.clear_selection()
        state.build_notice = None
        state.mode = Mode.EXPLORE
        state.diff_scroll = 0
        state.shown_reference = None
        state.explore_text = event.output
        state.status_message = f"Created stash: {event.message}"
        state.loading = True
        self.dispatcher.load_stashes(focus_index=0)

    def _on_working_tree_restored(self, event: WorkingTreeRestored) -> None:
        state = self.state
        state.loading = False
        state.diff_scroll = 0
        if event.failure is not None:
            state.build_notice = (
                f"Restore failed:\n{_failure_text(event.failure, event.output)}"
            )
            return

        state.clear_selection()
        state.build_notice = f"Working tree restored:\n{event.output.rstrip()}"
        state.loading = True
        self.dispatcher.scan_working_tree()
