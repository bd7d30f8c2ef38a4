"""
Logging configuration — central setup for the CLI.

Called once at startup by main.py. Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  MACSETUP_LOG_LEVEL env var  >  WARNING (default)

Optional extra file output via MACSETUP_LOG_FILE / MACSETUP_LOG_FILE_LEVEL.
The ``run`` command additionally attaches the run log from the manifest
settings with ``attach_run_log``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_FMT_MINIMAL = "%(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_FULL = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

# (highest level the format applies to, format, datefmt); first match wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, _FMT_FULL, "%H:%M:%S"),
    (logging.INFO, _FMT_VERBOSE, "%H:%M:%S"),
)
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with a stderr console handler.

    Args:
        level: Console level name; unknown names fall back to WARNING.
        log_file: Optional extra log file (MACSETUP_LOG_FILE).
        log_file_level: Level for ``log_file``; defaults to ``level``.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(Path(log_file), file_level))

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))


def attach_run_log(path: Path, level: str = "INFO") -> logging.Handler | None:
    """Append this run's log lines to ``path``.

    Returns the handler (so callers can detach it), or None when the
    file cannot be opened. A missing run log never stops a run.
    """
    numeric_level = _parse_level(level)
    try:
        handler = _file_handler(Path(path), numeric_level)
    except OSError as e:
        logging.getLogger(__name__).warning("Cannot open run log %s: %s", path, e)
        return None

    root = logging.getLogger()
    root.addHandler(handler)
    if root.level > numeric_level:
        # Lower the root gate; the console handler keeps its own level
        root.setLevel(numeric_level)
    return handler


def detach_handler(handler: logging.Handler | None) -> None:
    if handler is None:
        return
    logging.getLogger().removeHandler(handler)
    handler.close()


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _FMT_MINIMAL, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(path, mode="a", encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(_FMT_FULL, datefmt=_FILE_DATEFMT))
    return fh


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
