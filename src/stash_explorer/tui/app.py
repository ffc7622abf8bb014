"""Main TUI application loop and layout.

This module orchestrates the TUI application with real-time updates,
integrating the TaskDispatcher, StateMachine, and all view components.
"""

from __future__ import annotations

import logging
import queue
import select
import sys

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel

from ..git_backend import GitBackend
from ..utils import Config
from .dispatcher import TaskDispatcher
from .events import CompletionEvent
from .models import AppState, Modal, Mode
from .state_machine import QUIT, StateMachine
from .tui_utils import MODAL_ROWS, cbreak_terminal, compute_panel_dimensions, get_terminal_size
from .views.diff_panel import render_diff_panel
from .views.error_view import render_error_view
from .views.footer_bar import render_footer_bar
from .views.header_bar import render_header_bar
from .views.item_list import render_item_list
from .views.modal import render_modal

logger = logging.getLogger(__name__)

ESCAPE_SEQUENCES = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
}
TILDE_SEQUENCES = {
    "5": "pgup",
    "6": "pgdown",
}
CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x03": "ctrl+c",
}


class TUIApp:
    """Main TUI application orchestrating all components."""

    def __init__(self, config: Config, backend: GitBackend | None = None):
        """Initialize TUI application.

        Args:
            config: Runtime configuration
            backend: Git gateway; built from config when omitted
        """
        self.config = config
        self.theme = config.theme
        self.console = Console()

        # Terminal size tracking
        self.terminal_width, self.terminal_height = get_terminal_size()
        self.min_terminal_cols = config.min_terminal_cols
        self.min_terminal_rows = config.min_terminal_rows
        self.terminal_size_ok = (
            self.terminal_width >= self.min_terminal_cols
            and self.terminal_height >= self.min_terminal_rows
        )

        # Initialize state
        self.app_state = AppState(
            dimensions=compute_panel_dimensions(self.terminal_width, self.terminal_height)
        )
        self.should_quit = False
        self._interrupt_requested = False

        # Initialize backend plumbing
        self.backend = backend or GitBackend(config.repo_path, config.git_command)
        self.event_queue: queue.Queue[CompletionEvent] = queue.Queue()
        self.dispatcher = TaskDispatcher(self.backend, self.event_queue)
        self.state_machine = StateMachine(self.app_state, self.dispatcher)

    def request_interrupt(self) -> None:
        """Ask the main loop to treat the next cycle as an interrupt key (signal-safe)."""
        self._interrupt_requested = True

    def _process_events(self) -> None:
        """Apply all pending completion events from the queue."""
        try:
            while True:
                event = self.event_queue.get_nowait()
                self.state_machine.handle_event(event)
        except queue.Empty:
            pass

    def handle_key(self, key: str) -> None:
        """Feed one decoded key to the state machine."""
        _, message = self.state_machine.handle_key(key)
        if message == QUIT:
            logger.info("Quit requested")
            self.should_quit = True

    def _check_terminal_size(self) -> None:
        """Track terminal size, forwarding changes to the state machine."""
        width, height = get_terminal_size()
        if (width, height) != (self.terminal_width, self.terminal_height):
            logger.debug(f"Terminal resized to {width}x{height}")
            self.terminal_width, self.terminal_height = width, height
            self.state_machine.handle_resize(width, height)
        self.terminal_size_ok = width >= self.min_terminal_cols and height >= self.min_terminal_rows

    def _size_warning(self) -> str | None:
        if self.terminal_size_ok:
            return None
        return (
            f"Terminal too small! Need {self.min_terminal_cols}x"
            f"{self.min_terminal_rows}, got {self.terminal_width}x{self.terminal_height}"
        )

    def _read_char(self, timeout: float) -> str | None:
        ready, _, _ = select.select([sys.stdin], [], [], timeout)
        if not ready:
            return None
        return sys.stdin.read(1)

    def _poll_keyboard(self, timeout: float = 0.1) -> str | None:
        """Poll for keyboard input with timeout.

        Args:
            timeout: Timeout in seconds

        Returns:
            Key string if key pressed, None otherwise
        """
        try:
            key = self._read_char(timeout)
            if key is None:
                return None

            if key == "\x1b":
                second = self._read_char(0.01)
                if second != "[":
                    return "\x1b"
                third = self._read_char(0.01)
                if third in ESCAPE_SEQUENCES:
                    return ESCAPE_SEQUENCES[third]
                if third in TILDE_SEQUENCES:
                    self._read_char(0.01)  # trailing "~"
                    return TILDE_SEQUENCES[third]
                return "\x1b"

            return CONTROL_KEYS.get(key, key)
        except Exception as err:
            logger.warning(f"Error reading keyboard input: {err}")
            return None

    def _build_layout(self) -> Layout:
        """Build the layout for the current state.

        Returns:
            Rich Layout with all panels rendered
        """
        state = self.app_state
        layout = Layout()

        if state.bootstrap_error is not None:
            layout.update(render_error_view(state.bootstrap_error, self.theme))
            return layout

        layout.split_column(
            Layout(name="header", size=1),
            Layout(name="main", ratio=1),
            Layout(name="footer", size=1),
        )
        layout["main"].split_row(
            Layout(name="list", ratio=3),
            Layout(name="right", ratio=7),
        )

        modal_panel = render_modal(state, self.theme)
        if modal_panel is not None:
            layout["right"].split_column(
                Layout(name="diff", ratio=1),
                Layout(name="modal", size=MODAL_ROWS),
            )
            layout["modal"].update(modal_panel)
        else:
            layout["right"].split_column(Layout(name="diff"))

        layout["header"].update(
            render_header_bar(state.mode, state.loading, self.config.repo_path.name, self.theme)
        )
        layout["list"].update(self._render_list())
        layout["diff"].update(self._render_diff())
        layout["footer"].update(
            render_footer_bar(
                mode=state.mode,
                theme=self.theme,
                status_message=state.status_message,
                error_message=self._size_warning() or state.last_error,
                terminal_width=self.terminal_width,
            )
        )
        return layout

    def _render_list(self) -> Panel:
        state = self.app_state
        focused = state.active_modal is Modal.NONE
        rows = state.dimensions.list_rows
        if state.mode is Mode.EXPLORE:
            empty = "No stashes found." if state.stashes_loaded else "Loading stashes..."
            return render_item_list(
                state.stashes,
                state.stash_cursor,
                rows,
                self.theme,
                title="Stashes",
                empty_text=empty,
                focused=focused,
            )
        return render_item_list(
            state.files,
            state.file_cursor,
            rows,
            self.theme,
            title=f"Working tree ({len(state.selected_files)} selected)",
            selected=state.selected_files,
            empty_text="Working tree clean",
            focused=focused,
        )

    def _render_diff(self) -> Panel:
        state = self.app_state
        rows = state.dimensions.diff_rows
        if state.active_modal is not Modal.NONE:
            rows = max(1, rows - MODAL_ROWS)
        if state.mode is Mode.EXPLORE:
            title = state.shown_reference or "Output"
            placeholder = "Press Enter to show the selected stash"
        else:
            title = "Selection diff"
            placeholder = "Select files with Enter, expand them with Space"
        return render_diff_panel(
            state.panel_text(),
            state.diff_scroll,
            rows,
            self.theme,
            title=title,
            placeholder=placeholder,
        )

    def run(self) -> int:
        """Run the main TUI event loop.

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        with cbreak_terminal():
            self.state_machine.bootstrap()

            with Live(
                self._build_layout(),
                console=self.console,
                refresh_per_second=self.config.refresh_per_second,
                screen=True,
            ) as live:
                logger.info("TUI main loop started")

                while not self.should_quit:
                    if self._interrupt_requested:
                        self._interrupt_requested = False
                        self.handle_key("ctrl+c")
                        if self.should_quit:
                            break

                    self._process_events()
                    self._check_terminal_size()

                    key = self._poll_keyboard(timeout=self.config.input_poll_seconds)
                    if key:
                        self.handle_key(key)

                    live.update(self._build_layout())

        logger.info("TUI main loop exited")
        return 0

    def shutdown(self, timeout: float = 2.0) -> None:
        """Wait briefly for in-flight git commands before exiting.

        Args:
            timeout: Seconds to wait for outstanding tasks
        """
        logger.info(f"Shutting down TUI ({self.dispatcher.in_flight} task(s) in flight)")
        if not self.dispatcher.wait(timeout):
            logger.warning("Background git commands still running at exit")
        logger.info("TUI shutdown complete")
