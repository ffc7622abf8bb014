"""Custom exceptions for TUI operations.

This module defines a hierarchy of exceptions for the error scenarios that
abort startup. Backend command failures are not exceptions; they travel as
``CommandFailure`` values inside completion events.
"""


class TUIError(Exception):
    """Base exception for all TUI-related errors."""


class ConfigError(TUIError):
    """Raised when configuration is invalid or cannot be loaded."""


class TerminalError(TUIError):
    """Raised when the terminal cannot host the interactive session."""
