"""Configuration loading for the stash explorer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from rich.errors import StyleSyntaxError
from rich.style import Style

from .tui.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.config/stash-explorer/config.json")
DEFAULT_LOG_FILE = Path("~/.cache/stash-explorer/tui.log")


@dataclass(frozen=True)
class Theme:
    """Rich style strings used by the view renderers.

    Built once at startup and handed to every view function, so styling
    never lives in module-level globals.
    """

    accent: str = "bold cyan"
    muted: str = "dim"
    error: str = "bold red"
    success: str = "green"
    highlight: str = "reverse"
    selected: str = "bold green"
    staged: str = "green"
    unstaged: str = "yellow"
    border: str = "blue"
    active_border: str = "cyan"
    modal_border: str = "magenta"
    danger_border: str = "red"

    @classmethod
    def from_dict(cls, payload: dict) -> Theme:
        """Create a Theme from a mapping of style names, validating each one."""
        if not isinstance(payload, dict):
            raise ConfigError("theme must be an object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown theme keys: {', '.join(unknown)}")

        for key, value in payload.items():
            if not isinstance(value, str):
                raise ConfigError(f"theme.{key} must be a string, got {type(value).__name__}")
            try:
                Style.parse(value)
            except StyleSyntaxError as err:
                raise ConfigError(f"theme.{key} is not a valid style: {err}") from err

        return cls(**payload)


@dataclass(frozen=True)
class Config:
    """Runtime configuration loaded from config.json."""

    repo_path: Path
    git_command: tuple[str, ...] = ("git",)
    refresh_per_second: int = 10
    input_poll_seconds: float = 0.05
    min_terminal_cols: int = 60
    min_terminal_rows: int = 15
    log_file: Path = field(default_factory=lambda: DEFAULT_LOG_FILE.expanduser())
    theme: Theme = field(default_factory=Theme)

    @classmethod
    def from_dict(cls, payload: dict) -> Config:
        """Create a Config object from a raw dictionary."""
        if not isinstance(payload, dict):
            raise ConfigError("Config root must be an object")

        repo_path = Path(os.path.expanduser(payload.get("repo_path", "."))).resolve()
        log_file = Path(
            os.path.expanduser(payload.get("log_file", str(DEFAULT_LOG_FILE)))
        ).resolve()

        git_command_raw = payload.get("git_command", ["git"])
        if isinstance(git_command_raw, str):
            git_command_raw = [git_command_raw]
        if not isinstance(git_command_raw, list) or not git_command_raw:
            raise ConfigError("git_command must be a non-empty list of strings")
        git_command = tuple(str(part) for part in git_command_raw)

        try:
            refresh_per_second = int(payload.get("refresh_per_second", 10))
            input_poll_seconds = float(payload.get("input_poll_seconds", 0.05))
            min_terminal_cols = int(payload.get("min_terminal_cols", 60))
            min_terminal_rows = int(payload.get("min_terminal_rows", 15))
        except (TypeError, ValueError) as err:
            raise ConfigError(f"Invalid numeric config value: {err}") from err

        if refresh_per_second <= 0:
            raise ConfigError(f"refresh_per_second must be positive, got {refresh_per_second}")
        if input_poll_seconds <= 0:
            raise ConfigError(f"input_poll_seconds must be positive, got {input_poll_seconds}")
        if min_terminal_cols <= 0:
            raise ConfigError(f"min_terminal_cols must be positive, got {min_terminal_cols}")
        if min_terminal_rows <= 0:
            raise ConfigError(f"min_terminal_rows must be positive, got {min_terminal_rows}")

        theme = Theme.from_dict(payload.get("theme", {}))

        return cls(
            repo_path=repo_path,
            git_command=git_command,
            refresh_per_second=refresh_per_second,
            input_poll_seconds=input_poll_seconds,
            min_terminal_cols=min_terminal_cols,
            min_terminal_rows=min_terminal_rows,
            log_file=log_file,
            theme=theme,
        )


def load_config(path: Path) -> Config:
    """Load configuration from the provided path.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as err:
        raise ConfigError(f"Cannot read config {path}: {err}") from err
    except json.JSONDecodeError as err:
        raise ConfigError(f"Config {path} is not valid JSON: {err}") from err
    return Config.from_dict(data)
