"""Logging for the docsmith command line.

Every record at the file level lands in a rotating ``docsmith.log``. The
console (stderr) only shows warnings and errors unless debug logging is on,
so the workflow summary written to stdout stays readable.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "DEFAULT_LOG_DIR", "setup_logging", "get_log_path"]

LOG_FILE_NAME = "docsmith.log"
DEFAULT_LOG_DIR = Path.home() / ".docsmith" / "logs"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# httpx logs one INFO line per request; DocumentApiClient already logs its own.
_HTTP_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

_log_path: Path | None = None


def setup_logging(
    *,
    debug: bool = False,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the file and console handlers on the root logger.

    Args:
        debug: Log DEBUG records to the file and echo INFO and above on the
            console. Otherwise the file gets INFO and the console WARNING.
        log_dir: Folder for ``docsmith.log``; defaults to ``~/.docsmith/logs``.
        console: Attach the stderr handler.
        max_bytes: Rotation threshold of the log file.
        backup_count: Number of rotated files kept.
        force: Reconfigure even if logging was already set up.

    Returns:
        Path of the active log file.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path

    directory = Path(log_dir or DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME
    file_level = logging.DEBUG if debug else logging.INFO

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    handlers: list[logging.Handler] = [file_handler]

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO if debug else logging.WARNING)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console_handler)

    logging.basicConfig(level=file_level, handlers=handlers, force=True)
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_path = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _log_path
