"""State management for TUI application.

This module provides a unified interface to the state models and the
completion events that mutate them:
- models.py: Domain records and the application state
- events.py: Completion events produced by background tasks
"""

from __future__ import annotations

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
from .models import AppState, FileChange, ListItem, Modal, Mode, StashEntry, TextInput

__all__ = [
    "AppState",
    "CompletionEvent",
    "FileChange",
    "FileDiffLoaded",
    "ListItem",
    "Modal",
    "Mode",
    "StashApplied",
    "StashCreated",
    "StashDiffLoaded",
    "StashDropped",
    "StashEntry",
    "StashListLoaded",
    "TextInput",
    "WorkingTreeRestored",
    "WorkingTreeScanned",
]
