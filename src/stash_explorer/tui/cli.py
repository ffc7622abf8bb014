"""CLI entry point for TUI application.

This module handles command-line argument parsing, logging setup,
signal handling, and the main entry point.
"""

from __future__ import annotations

import argparse
import json
import logging
import logging.handlers
import signal
import sys
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console

from ..utils import DEFAULT_CONFIG_PATH, Config, load_config
from .app import TUIApp
from .exceptions import ConfigError, TerminalError

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log line
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "context": {
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
                "thread": record.threadName,
            },
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_context"):
            log_data["context"].update(record.extra_context)

        return json.dumps(log_data)


def _setup_logging(log_file: Path, debug: bool) -> None:
    """Setup structured JSON logging to file.

    The screen belongs to the TUI, so nothing is logged to the console.

    Args:
        log_file: Path to log file
        debug: Enable debug level logging
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # 10MB max, 3 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(JSONFormatter())
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)

    root_logger.addHandler(file_handler)

    logger.info(
        "Logging initialized",
        extra={"extra_context": {"log_file": str(log_file), "debug": debug}},
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="stash-explorer",
        description="Interactive terminal explorer for git stashes",
    )

    parser.add_argument(
        "--repo",
        type=Path,
        default=None,
        help="Repository to explore (default: repo_path from config, else current directory)",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to config.json (default: {DEFAULT_CONFIG_PATH})",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> Config:
    """Load the config file (optional unless given explicitly) and apply CLI overrides.

    Raises:
        ConfigError: If the config is missing when requested explicitly, or invalid
    """
    if args.config is not None:
        config_path = args.config.expanduser().resolve()
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        config = load_config(config_path)
    else:
        default_path = DEFAULT_CONFIG_PATH.expanduser()
        config = load_config(default_path) if default_path.exists() else Config.from_dict({})

    if args.repo is not None:
        config = replace(config, repo_path=args.repo.expanduser().resolve())
    return config


# Global TUI app instance for signal handlers
_app_instance: TUIApp | None = None


def _signal_handler(signum: int, frame) -> None:
    """Handle shutdown signals.

    Args:
        signum: Signal number
        frame: Current stack frame
    """
    if _app_instance is None:
        sys.exit(130 if signum == signal.SIGINT else 1)

    if signum == signal.SIGINT:
        # Interrupt closes an open modal first, like the q key
        logger.info("Received SIGINT")
        _app_instance.request_interrupt()

    elif signum == signal.SIGTERM:
        logger.info("Received SIGTERM, exiting")
        _app_instance.should_quit = True


def main(argv: list[str] | None = None) -> int:
    """Main entry point for TUI application.

    Returns:
        Exit code (0=success, 1=error, 130=SIGINT)
    """
    global _app_instance

    args = _parse_args(argv)
    console = Console()

    try:
        config = _resolve_config(args)
    except ConfigError as err:
        console.print(f"[red]Error loading config: {err}[/red]")
        return 1

    _setup_logging(config.log_file, args.debug)
    logger.info(
        "TUI starting",
        extra={"extra_context": {"repo_path": str(config.repo_path), "debug": args.debug}},
    )

    if not config.repo_path.is_dir():
        console.print(f"[red]Error: Repository not found: {config.repo_path}[/red]")
        logger.error(
            "Repository not found",
            extra={"extra_context": {"repo_path": str(config.repo_path)}},
        )
        return 1

    try:
        _app_instance = TUIApp(config)

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        exit_code = _app_instance.run()

        logger.info("TUI exited", extra={"extra_context": {"exit_code": exit_code}})
        return exit_code

    except TerminalError as err:
        console.print(f"[red]Error: {err}[/red]")
        logger.error("Terminal unusable", extra={"extra_context": {"error": str(err)}})
        return 1

    except KeyboardInterrupt:
        logger.info("TUI interrupted by user (KeyboardInterrupt)")
        return 130

    except Exception as err:
        logger.error(
            "TUI crashed with unhandled exception",
            extra={"extra_context": {"error": str(err)}},
            exc_info=True,
        )
        console.print(f"[red]Fatal error: {err}[/red]")
        console.print(f"[dim]Check logs at: {config.log_file}[/dim]")
        return 1

    finally:
        if _app_instance:
            _app_instance.shutdown(timeout=2.0)
            _app_instance = None


if __name__ == "__main__":
    sys.exit(main())
