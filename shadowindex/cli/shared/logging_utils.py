"""Loguru helpers for consistent logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from shadowindex.utils.helpers import ensure_dir, get_data_path

_SINK_IDS: dict[str, int] = {}
_STDERR_FORMAT = "<dim>{time:HH:mm:ss.SSS}</dim> | <level>{level: <8}</level> | <level>{message}</level>"


def get_log_dir() -> Path:
    return get_data_path() / "logs"


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_path = get_log_dir() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    ensure_dir(log_path.parent)
    sink_id = logger.add(
        str(log_path),
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path


def configure_cli_logging(name: str, *, verbose: bool = False) -> Path:
    """
    Route logs for a CLI command: always to the rotating file, and to stderr with --verbose.

    Without --verbose, stderr stays quiet so rich output is not interleaved with log lines.
    """
    logger.remove()
    logger.enable("shadowindex")
    if verbose:
        logger.add(sys.stderr, level="DEBUG", format=_STDERR_FORMAT)
    _SINK_IDS.clear()
    return ensure_rotating_log_file(name, level="DEBUG" if verbose else "INFO")
