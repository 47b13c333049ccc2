"""
Logging helpers for cvingest.

Defines the package logger and simple utilities for configuring
console and optional file logging.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

if TYPE_CHECKING:
    from .models import ExtractionAttempt

LOG = logging.getLogger("cvingest")

# Verbosity levels
VERBOSITY_QUIET = 0    # Minimal output (default)
VERBOSITY_NORMAL = 1   # Standard output with level prefix
VERBOSITY_VERBOSE = 2  # Detailed debug output

# Third-party loggers and the level they are held at
_QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "PIL": logging.WARNING,
    "pypdf": logging.ERROR,
}

_FILE_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"


def _console_formatter(verbosity: int) -> logging.Formatter:
    if verbosity >= VERBOSITY_NORMAL:
        return logging.Formatter("%(levelname)s: %(message)s")
    return logging.Formatter("%(message)s")


def _level_for(verbosity: int) -> int:
    if verbosity >= VERBOSITY_VERBOSE:
        return logging.DEBUG
    if verbosity >= VERBOSITY_NORMAL:
        return logging.INFO
    return logging.WARNING


def setup_logging(debug: bool, log_file: Optional[str] = None, verbosity: int = VERBOSITY_QUIET) -> None:
    """
    Setup logging with verbosity control.

    Console output goes through the root logger. The optional log file is
    attached to the ``cvingest`` logger only and always records DEBUG, so
    per-attempt adapter detail lands there even in quiet mode. Calling this
    again replaces the previous log file instead of adding a second one.

    Args:
        debug: Debug flag (overrides verbosity to VERBOSITY_VERBOSE)
        log_file: Optional log file path
        verbosity: Verbosity level (0=quiet, 1=normal, 2=verbose)
    """
    if debug:
        verbosity = VERBOSITY_VERBOSE
    level = _level_for(verbosity)

    # Handlers may already be configured (e.g., by pytest); just update them
    consoles = [
        h for h in logging.root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]
    if not logging.root.handlers:
        console = logging.StreamHandler()
        logging.basicConfig(level=level, handlers=[console], force=True)
        consoles = [console]
    for handler in consoles:
        handler.setLevel(level)
        handler.setFormatter(_console_formatter(verbosity))
    logging.root.setLevel(level)

    for handler in [h for h in LOG.handlers if isinstance(h, logging.FileHandler)]:
        LOG.removeHandler(handler)
        handler.close()
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        LOG.addHandler(file_handler)
        LOG.setLevel(logging.DEBUG)
    else:
        LOG.setLevel(logging.NOTSET)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def fmt_attempts(attempts: Iterable["ExtractionAttempt"]) -> str:
    """
    Compact adapter-attempt string for the one-line-per-file log.

    Example: "text:ok(812) | pdf-text:failed"
    """
    parts: List[str] = []
    for attempt in attempts:
        if attempt.success:
            parts.append(f"{attempt.adapter}:ok({len(attempt.text)})")
        else:
            parts.append(f"{attempt.adapter}:{attempt.status}")
    return " | ".join(parts) if parts else "-"
