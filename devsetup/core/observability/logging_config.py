"""
Diagnostic logging setup — stdlib ``logging`` for the whole process.

Called once by the CLI. Modules log diagnostics through
``logger = logging.getLogger(__name__)``; user-facing progress goes
through the log bus instead (see ``log_bus``).

Level precedence:
    --debug  >  --verbose  >  DEVSETUP_LOG_LEVEL  >  WARNING
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LOG_LEVEL = "DEVSETUP_LOG_LEVEL"
ENV_LOG_FILE = "DEVSETUP_LOG_FILE"

# ── Format strings ──────────────────────────────────────────────

_FMT_MINIMAL = "%(levelname)s: %(message)s"

_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# Workers run concurrently, so debug output names the thread.
_FMT_DEBUG = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "urllib.request")


def resolve_level(*, debug: bool = False, verbose: bool = False) -> str:
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    return os.environ.get(ENV_LOG_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger.

    Args:
        level: Console level name.
        log_file: Optional file receiving full-detail records.
        log_file_level: Level for the file handler, defaults to ``level``.
    """
    numeric_level = parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Level name to numeric constant; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
