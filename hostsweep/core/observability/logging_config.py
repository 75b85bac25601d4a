"""
Logging configuration — called once by the CLI at process start.

Every module logs through ``logging.getLogger(__name__)`` and inherits
this setup. Console output goes to stderr so ``--json`` output on
stdout stays parseable.

Level precedence:
    --debug  >  --verbose  >  --quiet  >  HOSTSWEEP_LOG_LEVEL  >  WARNING

A maintenance run is worth keeping a record of, so a log file can be
added with HOSTSWEEP_LOG_FILE (level via HOSTSWEEP_LOG_FILE_LEVEL,
default INFO).
"""

from __future__ import annotations

import logging
import sys

_FMT_CONSOLE = "%(message)s"
_FMT_VERBOSE = "%(asctime)s %(message)s"
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_SHORT = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def resolve_level(debug: bool, verbose: bool, quiet: bool, env_level: str | None) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to append a full-detail log to.
        log_file_level: Level for the file handler (default INFO).
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_SHORT
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_SHORT
    else:
        fmt, datefmt = _FMT_CONSOLE, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.INFO)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        effective_level = min(effective_level, file_level)

    root.setLevel(effective_level)
    logging.raiseExceptions = False


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Convert a level name to its numeric constant; unknown names → default."""
    if not level:
        return default
    numeric = getattr(logging, level.upper(), None)
    return numeric if isinstance(numeric, int) else default
