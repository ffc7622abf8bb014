"""Tests for StateMachine key handling and completion events."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from stash_explorer.git_backend import CommandFailure
from stash_explorer.tui.dispatcher import TaskDispatcher
from stash_explorer.tui.state import (
    AppState,
    FileChange,
    FileDiffLoaded,
    Modal,
    Mode,
    StashApplied,
    StashCreated,
    StashDiffLoaded,
    StashDropped,
    StashEntry,
    StashListLoaded,
    WorkingTreeRestored,
    WorkingTreeScanned,
)
from stash_explorer.tui.state_machine import ESCAPE, QUIT, StateMachine

STASHES = [
    StashEntry("stash@{0}", "WIP on main: fix parser", "2 hours ago"),
    StashEntry("stash@{1}", "On main: experiment", "3 days ago"),
    StashEntry("stash@{2}", "On feature: notes", "2 weeks ago"),
]
FILES = [
    FileChange("a.py", "M", True),
    FileChange("b.py", "M", False),
    FileChange("new.txt", "?", False),
]


@pytest.fixture
def dispatcher():
    """Dispatcher double recording requested work."""
    return Mock(spec=TaskDispatcher)


@pytest.fixture
def state():
    """Fresh application state."""
    return AppState()


@pytest.fixture
def machine(state, dispatcher):
    """State machine wired to the mock dispatcher."""
    return StateMachine(state, dispatcher)


@pytest.fixture
def loaded(machine):
    """State machine with the stash list already loaded (generation 1)."""
    machine.handle_event(StashListLoaded(entries=list(STASHES), bootstrap=True))
    machine.dispatcher.reset_mock()
    return machine


@pytest.fixture
def building(machine):
    """State machine in Build mode with a scanned working tree."""
    machine.handle_key("tab")
    machine.handle_event(WorkingTreeScanned(files=list(FILES)))
    machine.dispatcher.reset_mock()
    return machine


class TestBootstrap:
    """Tests for the initial stash load."""

    def test_bootstrap_dispatches_list(self, machine, state, dispatcher):
        """Bootstrap sets loading and requests the stash list."""
        machine.bootstrap()

        assert state.loading is True
        dispatcher.load_stashes.assert_called_once_with(bootstrap=True)

    def test_bootstrap_failure_is_fatal_view(self, machine, state):
        """A failed first load records a bootstrap error."""
        failure = CommandFailure("git stash list", 128, "fatal: not a git repository")

        machine.handle_event(StashListLoaded(failure=failure, bootstrap=True))

        assert state.bootstrap_error is not None
        assert "not a git repository" in state.bootstrap_error
        assert state.loading is False

    def test_later_list_failure_is_not_fatal(self, loaded, state):
        """Reload failures are shown inline and keep the old list."""
        failure = CommandFailure("git stash list", 1, "boom")

        loaded.handle_event(StashListLoaded(failure=failure))

        assert state.bootstrap_error is None
        assert state.last_error is not None
        assert state.explore_text == "boom"
        assert state.stashes == STASHES

    def test_empty_list(self, machine, state):
        """An empty stash list shows the empty notice."""
        machine.handle_event(StashListLoaded(entries=[], bootstrap=True))

        assert state.stashes == []
        assert state.explore_text == "No stashes found."
        assert state.stashes_loaded is True


class TestQuitAndModals:
    """Tests for quit keys and modal dismissal."""

    @pytest.mark.parametrize("key", ["q", "ctrl+c"])
    def test_quit_without_modal(self, machine, key):
        """q and Ctrl+C quit when no modal is open."""
        assert machine.handle_key(key) == (True, QUIT)

    @pytest.mark.parametrize("key", ["q", "ctrl+c", "n", "N", ESCAPE])
    def test_dismiss_confirm_modal(self, loaded, state, dispatcher, key):
        """Cancel keys close a confirm modal without running anything."""
        loaded.handle_key("d")
        assert state.active_modal is Modal.DELETE_CONFIRM

        handled, message = loaded.handle_key(key)

        assert handled is True
        assert message is None
        assert state.active_modal is Modal.NONE
        assert state.pending_reference is None
        dispatcher.drop_stash.assert_not_called()

    def test_confirm_modal_ignores_other_keys(self, loaded, state, dispatcher):
        """Navigation keys do nothing while a confirm modal is open."""
        loaded.handle_key("a")

        loaded.handle_key("down")
        loaded.handle_key("tab")

        assert state.active_modal is Modal.APPLY_CONFIRM
        assert state.stash_cursor == 0
        assert state.mode is Mode.EXPLORE
        dispatcher.scan_working_tree.assert_not_called()

    def test_unassigned_key_reports(self, loaded, state):
        """Unknown printable keys produce a feedback message."""
        handled, message = loaded.handle_key("z")

        assert handled is True
        assert message == "Key 'z' not assigned"
        assert state.status_message == message

    def test_unknown_named_key_not_handled(self, loaded):
        """Unrecognized named keys are reported as unhandled."""
        assert loaded.handle_key("f5") == (False, None)


class TestExploreMode:
    """Tests for navigating and acting on stashes."""

    def test_cursor_clamped(self, loaded, state):
        """The cursor never leaves the list bounds."""
        loaded.handle_key("up")
        assert state.stash_cursor == 0

        for _ in range(10):
            loaded.handle_key("down")
        assert state.stash_cursor == len(STASHES) - 1

    def test_enter_requests_diff(self, loaded, state, dispatcher):
        """Enter on stash@{0} fetches its diff for the current generation."""
        loaded.handle_key("enter")

        assert state.shown_reference == "stash@{0}"
        assert state.loading is True
        dispatcher.fetch_stash_diff.assert_called_once_with("stash@{0}", 1)

    def test_diff_text_shown_verbatim(self, loaded, state):
        """A matching diff event replaces the panel text exactly."""
        loaded.handle_key("enter")
        diff = "\x1b[1mdiff --git a/x b/x\x1b[m\n+added\n"

        loaded.handle_event(StashDiffLoaded("stash@{0}", 1, diff))

        assert state.explore_text == diff
        assert state.loading is False
        assert state.last_error is None

    def test_diff_failure_sets_error(self, loaded, state):
        """A failed diff shows git's output and records the error."""
        loaded.handle_key("enter")
        failure = CommandFailure("git stash show", 1, "bad ref")

        loaded.handle_event(StashDiffLoaded("stash@{0}", 1, "bad ref", failure))

        assert state.explore_text == "bad ref"
        assert state.last_error == failure.describe()

    def test_stale_generation_ignored(self, loaded, state):
        """Diffs from before a list reload are discarded."""
        loaded.handle_key("enter")
        loaded.handle_event(StashListLoaded(entries=list(STASHES)))
        before = (state.explore_text, state.loading, state.shown_reference)

        loaded.handle_event(StashDiffLoaded("stash@{0}", 1, "old diff"))

        assert (state.explore_text, state.loading, state.shown_reference) == before

    def test_diff_for_other_reference_ignored(self, loaded, state):
        """A late diff for a previously shown stash does not overwrite."""
        loaded.handle_key("enter")
        loaded.handle_key("down")
        loaded.handle_key("enter")

        loaded.handle_event(StashDiffLoaded("stash@{0}", 1, "first diff"))
        assert state.explore_text == "Loading stash@{1}..."

        loaded.handle_event(StashDiffLoaded("stash@{1}", 1, "second diff"))
        assert state.explore_text == "second diff"

    def test_diff_for_unknown_reference_ignored(self, loaded, state):
        """Diff events for references not in the list are dropped."""
        state.shown_reference = "stash@{9}"
        loaded.handle_event(StashDiffLoaded("stash@{9}", 1, "ghost"))

        assert state.explore_text != "ghost"

    def test_drop_without_stashes(self, machine, state):
        """Drop on an empty list does not open a modal."""
        machine.handle_event(StashListLoaded(entries=[], bootstrap=True))

        handled, message = machine.handle_key("d")

        assert handled is True
        assert message == "No stashes found."
        assert state.active_modal is Modal.NONE

    def test_drop_confirm_dispatches(self, loaded, state, dispatcher):
        """Confirming a drop sends the reference and its index."""
        loaded.handle_key("down")
        loaded.handle_key("d")
        assert state.pending_reference == "stash@{1}"

        loaded.handle_key("y")

        dispatcher.drop_stash.assert_called_once_with("stash@{1}", 1)
        assert state.active_modal is Modal.NONE
        assert state.pending_reference is None

    def test_drop_success_reloads_before_diff(self, loaded, state, dispatcher):
        """After a drop the list reloads first; the diff follows the new list."""
        loaded.handle_event(StashDropped("stash@{1}", 1, "Dropped stash@{1} (abc)"))

        dispatcher.load_stashes.assert_called_once_with(focus_index=1)
        dispatcher.fetch_stash_diff.assert_not_called()
        assert state.loading is True
        assert state.last_error is None

        remaining = [STASHES[0], StashEntry("stash@{1}", "On feature: notes", "2 weeks ago")]
        loaded.handle_event(StashListLoaded(entries=remaining, focus_index=1))

        assert state.stash_cursor == 1
        dispatcher.fetch_stash_diff.assert_called_once_with("stash@{1}", 2)

    def test_drop_last_entry_clamps_focus(self, loaded, state, dispatcher):
        """Focus index past the end lands on the last remaining stash."""
        loaded.handle_event(StashListLoaded(entries=STASHES[:2], focus_index=2))

        assert state.stash_cursor == 1
        dispatcher.fetch_stash_diff.assert_called_once_with("stash@{1}", 2)

    def test_drop_failure(self, loaded, state, dispatcher):
        """A failed drop records the error and does not reload."""
        failure = CommandFailure("git stash drop", 1, "error: not found")

        loaded.handle_event(StashDropped("stash@{0}", 0, "error: not found", failure))

        assert state.last_error == failure.describe()
        assert "Failed to drop stash@{0}" in state.explore_text
        dispatcher.load_stashes.assert_not_called()

    def test_apply_confirm_dispatches(self, loaded, state, dispatcher):
        """Confirming apply dispatches it and marks loading."""
        loaded.handle_key("a")
        loaded.handle_key("Y")

        dispatcher.apply_stash.assert_called_once_with("stash@{0}")
        assert state.loading is True

    def test_apply_result_prefixes(self, loaded, state):
        """Apply results are prefixed and leave last_error alone."""
        state.last_error = "previous"

        loaded.handle_event(StashApplied("stash@{0}", "On branch main\n"))
        assert state.explore_text.startswith("Applied stash@{0}:")

        failure = CommandFailure("git stash apply", 1, "CONFLICT")
        loaded.handle_event(StashApplied("stash@{0}", "CONFLICT", failure))
        assert state.explore_text.startswith("Failed to apply stash@{0}:")
        assert state.last_error == "previous"


class TestModeSwitch:
    """Tests for Tab between Explore and Build."""

    def test_enter_build_scans(self, machine, state, dispatcher):
        """Switching to Build starts a working tree scan."""
        handled, message = machine.handle_key("tab")

        assert state.mode is Mode.BUILD
        assert state.loading is True
        assert message == "Build mode"
        dispatcher.scan_working_tree.assert_called_once_with()

    def test_scan_failure(self, machine, state):
        """Scan failures set the error and notice."""
        machine.handle_key("tab")
        failure = CommandFailure("git status", 128, "fatal")

        machine.handle_event(WorkingTreeScanned(failure=failure))

        assert state.last_error == failure.describe()
        assert "Failed to scan working tree" in state.build_notice
        assert state.loading is False

    def test_leaving_build_clears_selection(self, building, state):
        """Returning to Explore empties all per-file maps."""
        building.handle_key("enter")
        building.handle_key(" ")
        building.handle_event(FileDiffLoaded("a.py", True, "+x"))

        building.handle_key("tab")

        assert state.mode is Mode.EXPLORE
        assert state.selected_files == {}
        assert state.expanded == {}
        assert state.diff_cache == {}


class TestBuildMode:
    """Tests for file selection, expansion and stash creation."""

    def test_select_fetches_diff(self, building, state, dispatcher):
        """Enter selects the highlighted file and fetches its diff."""
        handled, message = building.handle_key("enter")

        assert message == "Selected a.py"
        assert state.selected_files == {"a.py": FILES[0]}
        assert state.expanded == {"a.py": False}
        dispatcher.fetch_file_diff.assert_called_once_with(FILES[0])
        assert state.per_file_keys_consistent()

    def test_deselect_removes_all_entries(self, building, state):
        """Deselecting removes the path from every per-file map."""
        building.handle_key("enter")
        building.handle_event(FileDiffLoaded("a.py", True, "+x"))

        building.handle_key("enter")

        assert state.selected_files == {}
        assert state.expanded == {}
        assert state.diff_cache == {}

    def test_late_diff_after_deselect_ignored(self, building, state):
        """A diff arriving after deselection does not resurrect the path."""
        building.handle_key("enter")
        building.handle_key("enter")

        building.handle_event(FileDiffLoaded("a.py", True, "+x"))

        assert state.diff_cache == {}
        assert state.per_file_keys_consistent()

    def test_space_toggles_expansion(self, building, state):
        """Space expands and collapses a selected file."""
        building.handle_key("enter")

        building.handle_key(" ")
        assert state.expanded["a.py"] is True
        assert "  Loading diff..." in state.panel_text()

        building.handle_event(FileDiffLoaded("a.py", True, "+added line\n"))
        assert "+added line" in state.panel_text()

        building.handle_key(" ")
        assert state.expanded["a.py"] is False
        assert "+added line" not in state.panel_text()

    def test_space_on_unselected_selects(self, building, state, dispatcher):
        """Space on an unselected file selects it collapsed."""
        building.handle_key("down")
        building.handle_key(" ")

        assert "b.py" in state.selected_files
        assert state.expanded["b.py"] is False
        dispatcher.fetch_file_diff.assert_called_once_with(FILES[1])

    def test_stash_requires_selection(self, building, state):
        """The message dialog only opens with something selected."""
        handled, message = building.handle_key("s")

        assert state.active_modal is Modal.NONE
        assert message == "Select at least one file before stashing"

    def test_empty_message_does_not_dispatch(self, building, state, dispatcher):
        """Enter with a blank message keeps the dialog open."""
        building.handle_key("enter")
        building.handle_key("s")
        building.handle_key(" ")
        building.handle_key(" ")

        building.handle_key("enter")

        assert state.active_modal is Modal.STASH_MESSAGE
        dispatcher.create_stash.assert_not_called()

    def test_message_typing(self, building, state):
        """Printable keys are typed into the message; backspace removes one."""
        building.handle_key("enter")
        building.handle_key("s")
        for key in "wipx":
            building.handle_key(key)
        building.handle_key("backspace")

        assert state.message_input.value == "wip"
        assert state.active_modal is Modal.STASH_MESSAGE

    def test_q_closes_message_dialog(self, building, state, dispatcher):
        """q dismisses the message dialog and discards the typed text."""
        building.handle_key("enter")
        building.handle_key("s")
        building.handle_key("w")

        handled, message = building.handle_key("q")

        assert (handled, message) == (True, None)
        assert state.active_modal is Modal.NONE
        assert state.message_input.value == ""
        dispatcher.create_stash.assert_not_called()

    def test_escape_cancels_message(self, building, state, dispatcher):
        """Esc closes the dialog and clears the typed text."""
        building.handle_key("enter")
        building.handle_key("s")
        building.handle_key("x")

        building.handle_key(ESCAPE)

        assert state.active_modal is Modal.NONE
        assert state.message_input.value == ""
        dispatcher.create_stash.assert_not_called()

    def test_create_stash_dispatch(self, building, state, dispatcher):
        """Enter with a message stashes the selected paths."""
        building.handle_key("enter")
        building.handle_key("down")
        building.handle_key("enter")
        building.handle_key("s")
        for key in " wip ":
            building.handle_key(key)

        building.handle_key("enter")

        paths, message = dispatcher.create_stash.call_args.args
        assert sorted(paths) == ["a.py", "b.py"]
        assert message == "wip"
        assert state.active_modal is Modal.NONE
        assert state.loading is True

    def test_create_success_returns_to_explore(self, building, state, dispatcher):
        """A created stash clears the selection and focuses the new entry."""
        building.handle_key("enter")
        state.last_error = "old"

        building.handle_event(StashCreated("wip", "Saved working directory"))

        assert state.mode is Mode.EXPLORE
        assert state.selected_files == {}
        assert state.last_error is None
        dispatcher.load_stashes.assert_called_once_with(focus_index=0)

    def test_create_failure_keeps_selection(self, building, state):
        """A failed stash keeps Build mode and only sets the notice."""
        building.handle_key("enter")
        failure = CommandFailure("git stash push", 1, "error: pathspec")

        building.handle_event(StashCreated("wip", "error: pathspec", failure))

        assert state.mode is Mode.BUILD
        assert "a.py" in state.selected_files
        assert state.last_error is None
        assert "Failed to create stash" in state.build_notice

    def test_restore_confirm(self, building, state, dispatcher):
        """r opens the restore modal; y dispatches the restore."""
        building.handle_key("r")
        assert state.active_modal is Modal.RESTORE_CONFIRM

        building.handle_key("y")

        dispatcher.restore_working_tree.assert_called_once_with()
        assert state.loading is True

    def test_restore_success_rescans(self, building, state, dispatcher):
        """A successful restore clears the selection and rescans."""
        building.handle_key("enter")

        building.handle_event(WorkingTreeRestored("HEAD is now at abc\n"))

        assert state.selected_files == {}
        assert "Working tree restored" in state.build_notice
        dispatcher.scan_working_tree.assert_called_once_with()

    def test_restore_failure(self, building, state, dispatcher):
        """A failed restore reports and does not rescan."""
        failure = CommandFailure("git reset --hard", 128, "fatal: lock")

        building.handle_event(WorkingTreeRestored("fatal: lock", failure))

        assert "Restore failed" in state.build_notice
        dispatcher.scan_working_tree.assert_not_called()


class TestListChangesDuringConfirmation:
    """Tests for confirmations whose target shifts under a list reload."""

    def test_reload_cancels_drop_confirmation(self, building, state, dispatcher):
        """A stash created while a drop is pending cancels the drop."""
        building.handle_event(StashListLoaded(entries=[StashEntry("stash@{0}", "foo", "1 day ago")]))
        building.handle_key("enter")
        building.handle_key("s")
        building.handle_key("n")
        building.handle_key("enter")
        building.handle_key("tab")
        building.handle_key("d")
        assert state.pending_reference == "stash@{0}"

        building.handle_event(StashCreated("n", "Saved working directory"))
        building.handle_event(
            StashListLoaded(
                entries=[
                    StashEntry("stash@{0}", "On main: n", "now"),
                    StashEntry("stash@{1}", "foo", "1 day ago"),
                ],
                focus_index=0,
            )
        )

        assert state.active_modal is Modal.NONE
        assert state.pending_reference is None
        building.handle_key("y")
        dispatcher.drop_stash.assert_not_called()

    def test_reload_cancels_apply_confirmation(self, loaded, state, dispatcher):
        loaded.handle_key("a")

        loaded.handle_event(StashListLoaded(entries=STASHES[1:]))

        assert state.active_modal is Modal.NONE
        assert state.status_message == "Stash list changed; confirmation cancelled"
        dispatcher.apply_stash.assert_not_called()

    def test_failed_reload_keeps_confirmation(self, loaded, state):
        """The list is unchanged on failure, so the target is still valid."""
        loaded.handle_key("d")

        loaded.handle_event(StashListLoaded(failure=CommandFailure("git stash list", 1, "x")))

        assert state.active_modal is Modal.DELETE_CONFIRM
        assert state.pending_reference == "stash@{0}"

    def test_created_stash_closes_restore_confirmation(self, building, state, dispatcher):
        """Returning to Explore after a stash closes an open restore dialog."""
        building.handle_key("enter")
        building.handle_key("s")
        building.handle_key("w")
        building.handle_key("enter")
        building.handle_key("r")
        assert state.active_modal is Modal.RESTORE_CONFIRM

        building.handle_event(StashCreated("w", "Saved working directory"))

        assert state.mode is Mode.EXPLORE
        assert state.active_modal is Modal.NONE
        building.handle_key("y")
        dispatcher.restore_working_tree.assert_not_called()


class TestScrollAndResize:
    """Tests for diff panel scrolling and resizes."""

    def test_page_down_clamped(self, loaded, state):
        """Paging never scrolls past the last full page."""
        state.explore_text = "\n".join(f"line {i}" for i in range(30))
        loaded.handle_resize(80, 14)

        loaded.handle_key("pgdown")
        loaded.handle_key("pgdown")
        loaded.handle_key("pgdown")

        assert state.diff_scroll == 30 - state.dimensions.diff_rows

        loaded.handle_key("pgup")
        loaded.handle_key("pgup")
        loaded.handle_key("pgup")
        assert state.diff_scroll == 0

    def test_resize_updates_dimensions(self, machine, state):
        """Resizes recompute the panel geometry."""
        machine.handle_resize(100, 30)

        assert state.dimensions.list_width == 30
        assert state.dimensions.body_height == 28

    def test_resize_during_modal(self, loaded, state):
        """Resizes apply even while a modal is open."""
        loaded.handle_key("d")

        loaded.handle_resize(120, 40)

        assert state.dimensions.width == 120
        assert state.active_modal is Modal.DELETE_CONFIRM
