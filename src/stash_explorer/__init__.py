"""Interactive terminal explorer for git stashes."""

__version__ = "0.1.0"
