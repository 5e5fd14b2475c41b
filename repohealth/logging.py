"""Logging utilities for repohealth components."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

_ROOT = "repohealth"
_CONSOLE_FORMAT = "[repohealth] %(levelname)s %(component)s%(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _ComponentFormatter(logging.Formatter):
    """Prefixes console lines with the component below the package logger."""

    def format(self, record: logging.LogRecord) -> str:
        component = record.name[len(_ROOT) + 1 :] if record.name.startswith(f"{_ROOT}.") else ""
        record.component = f"{component}: " if component else ""
        return super().format(record)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``repohealth.<name>`` (or the package logger when name is empty)."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install console and optional file handlers on the package logger.

    Existing handlers are replaced, so calling this more than once is safe.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream)
    console.setLevel(level)
    console.setFormatter(_ComponentFormatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def is_verbose(logger: logging.Logger) -> bool:
    """True when DEBUG records would be emitted, i.e. tracebacks are wanted."""
    return logger.isEnabledFor(logging.DEBUG)


__all__ = ["configure_logging", "get_logger", "is_verbose"]
