"""Logging utilities for cartograph components."""

from __future__ import annotations

import logging
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_LOGGER_NAME = "cartograph"
_LOG_FILENAME = "cartograph.log"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the cartograph hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def default_log_path() -> Path:
    """Location of the background log used when running as a long-lived service."""
    return Path(tempfile.gettempdir()) / _LOG_FILENAME


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the cartograph logger with console output and optional file sink.

    ``quiet`` keeps the console to warnings and above while the file sink, when
    given, still records everything at the selected level.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # CLI and service may both configure logging in one process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.WARNING if quiet else level)
    stream_handler.setFormatter(logging.Formatter("[cartograph] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


@contextmanager
def log_duration(logger: logging.Logger, message: str, *args: object) -> Iterator[None]:
    """Log ``message`` at debug level with the elapsed seconds appended."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - started
        logger.debug(message + " in %.2fs", *args, elapsed)


__all__ = ["configure_logging", "default_log_path", "get_logger", "log_duration"]
