"""Background execution of backend commands.

This module runs each git command on its own worker thread and publishes
exactly one completion event per command to a queue drained by the main
loop, so the UI keeps processing input while git works.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable

from ..git_backend import CommandFailure, GitBackend
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
from .models import FileChange

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Runs backend calls off the UI thread and queues their completion events.

    Tasks share no mutable state: each one reads its own arguments, calls a
    single backend method and builds a single event from the result.
    """

    def __init__(self, backend: GitBackend, event_queue: queue.Queue[CompletionEvent]) -> None:
        """Initialize dispatcher.

        Args:
            backend: Gateway used to run git commands
            event_queue: Queue that receives one event per dispatched task
        """
        self.backend = backend
        self.event_queue = event_queue
        self._threads: set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._task_count = 0

    @property
    def in_flight(self) -> int:
        """Number of tasks that have not delivered their event yet."""
        with self._lock:
            return len(self._threads)

    def _submit(
        self,
        name: str,
        work: Callable[[], CompletionEvent],
        on_crash: Callable[[CommandFailure], CompletionEvent],
    ) -> None:
        """Start a worker thread that publishes exactly one event."""

        def run() -> None:
            start_time = time.perf_counter()
            try:
                event = work()
            except Exception as err:
                logger.error(f"Task {name} crashed: {err}", exc_info=True)
                event = on_crash(CommandFailure(name, None, f"Internal error: {err}"))
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.debug(
                "Task finished",
                extra={"extra_context": {"task": name, "duration_ms": round(duration_ms, 2)}},
            )
            self.event_queue.put(event)
            with self._lock:
                self._threads.discard(threading.current_thread())

        with self._lock:
            self._task_count += 1
            thread = threading.Thread(
                target=run, daemon=True, name=f"task-{self._task_count}-{name}"
            )
            self._threads.add(thread)
        thread.start()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until all outstanding tasks finish.

        Args:
            timeout: Overall seconds to wait, or None to wait indefinitely

        Returns:
            True if every task finished, False if the timeout elapsed first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = list(self._threads)
            if not pending:
                return True
            for thread in pending:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                return self.in_flight == 0

    # Stash operations

    def load_stashes(self, bootstrap: bool = False, focus_index: int | None = None) -> None:
        def work() -> CompletionEvent:
            result = self.backend.list_stashes()
            return StashListLoaded(
                entries=result.value,
                failure=result.failure,
                bootstrap=bootstrap,
                focus_index=focus_index,
            )

        self._submit(
            "list_stashes",
            work,
            lambda failure: StashListLoaded(
                failure=failure, bootstrap=bootstrap, focus_index=focus_index
            ),
        )

    def fetch_stash_diff(self, reference: str, generation: int) -> None:
        def work() -> CompletionEvent:
            result = self.backend.show_stash_diff(reference)
            return StashDiffLoaded(reference, generation, result.value, result.failure)

        self._submit(
            "show_stash_diff",
            work,
            lambda failure: StashDiffLoaded(reference, generation, "", failure),
        )

    def drop_stash(self, reference: str, index: int) -> None:
        def work() -> CompletionEvent:
            result = self.backend.drop_stash(reference)
            return StashDropped(reference, index, result.value, result.failure)

        self._submit(
            "drop_stash", work, lambda failure: StashDropped(reference, index, "", failure)
        )

    def apply_stash(self, reference: str) -> None:
        def work() -> CompletionEvent:
            result = self.backend.apply_stash(reference)
            return StashApplied(reference, result.value, result.failure)

        self._submit("apply_stash", work, lambda failure: StashApplied(reference, "", failure))

    # Working tree operations

    def scan_working_tree(self) -> None:
        def work() -> CompletionEvent:
            result = self.backend.scan_working_tree()
            return WorkingTreeScanned(result.value, result.failure)

        self._submit(
            "scan_working_tree", work, lambda failure: WorkingTreeScanned(failure=failure)
        )

    def fetch_file_diff(self, change: FileChange) -> None:
        path, staged, untracked = change.path, change.staged, change.untracked

        def work() -> CompletionEvent:
            result = self.backend.diff_file(path, staged, untracked=untracked)
            return FileDiffLoaded(path, staged, result.value, result.failure)

        self._submit(
            "diff_file", work, lambda failure: FileDiffLoaded(path, staged, "", failure)
        )

    def create_stash(self, paths: Iterable[str], message: str) -> None:
        snapshot = frozenset(paths)

        def work() -> CompletionEvent:
            result = self.backend.create_stash(snapshot, message)
            return StashCreated(message, result.value, result.failure)

        self._submit("create_stash", work, lambda failure: StashCreated(message, "", failure))

    def restore_working_tree(self) -> None:
        def work() -> CompletionEvent:
            result = self.backend.restore_working_tree()
            return WorkingTreeRestored(result.value, result.failure)

        self._submit(
            "restore_working_tree", work, lambda failure: WorkingTreeRestored("", failure)
        )
