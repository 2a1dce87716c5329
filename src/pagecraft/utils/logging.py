"""Logging setup for the CLI and the Qt editor."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["log_path", "setup_logging"]

LOG_DIR_ENV = "PAGECRAFT_LOG_DIR"
LOG_FILE_NAME = "pagecraft.log"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_QUIET_LOGGERS = ("PySide6",)
_active_path: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 512_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Attach a rotating file handler (and optionally stderr) to the root logger.

    Repeated calls are no-ops unless ``force`` is set, so the CLI can call this
    again once persisted settings ask for debug output.
    """

    global _active_path
    if _active_path is not None and not force:
        return _active_path

    directory = Path(log_dir or os.environ.get(LOG_DIR_ENV) or Path.home() / ".pagecraft" / "logs").expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / LOG_FILE_NAME

    file_handler = logging.handlers.RotatingFileHandler(
        target, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers: list[logging.Handler] = [file_handler]
    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(stream_handler)
    for handler in handlers:
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_path = target
    return target


def log_path() -> Path | None:
    """Return the file the current configuration writes to."""

    return _active_path
