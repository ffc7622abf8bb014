"""Completion events delivered from background tasks to the state machine.

Each dispatched backend call produces exactly one of these. Every event
carries the identity (reference, path, generation) it belongs to, so it can
be applied correctly regardless of completion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from ..git_backend import CommandFailure
from .models import FileChange, StashEntry


@dataclass(frozen=True)
class StashListLoaded:
    """Result of listing stashes.

    ``focus_index`` asks the state machine to move the cursor there (clamped)
    and fetch that entry's diff once the list is in place.
    """

    entries: list[StashEntry] = field(default_factory=list)
    failure: CommandFailure | None = None
    bootstrap: bool = False
    focus_index: int | None = None


@dataclass(frozen=True)
class StashDiffLoaded:
    reference: str
    generation: int
    text: str
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class StashDropped:
    reference: str
    index: int
    output: str
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class StashApplied:
    reference: str
    output: str
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class WorkingTreeScanned:
    files: list[FileChange] = field(default_factory=list)
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class FileDiffLoaded:
    path: str
    staged: bool
    text: str
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class StashCreated:
    message: str
    output: str
    failure: CommandFailure | None = None


@dataclass(frozen=True)
class WorkingTreeRestored:
    output: str
    failure: CommandFailure | None = None


CompletionEvent = Union[
    StashListLoaded,
    StashDiffLoaded,
    StashDropped,
    StashApplied,
    WorkingTreeScanned,
    FileDiffLoaded,
    StashCreated,
    WorkingTreeRestored,
]
