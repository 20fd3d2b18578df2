"""Logger hierarchy and handler setup shared by every lean-intel component."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "lean_intel"
CONSOLE_FORMAT = "[lean-intel] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(component: str | None = None) -> logging.Logger:
    """Logger for ``component`` (``lean_intel.<component>``), or the root when omitted."""
    if not component:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | str | None = None
) -> logging.Logger:
    """Install console (and optionally file) handlers on the lean_intel logger.

    The file sink always records DEBUG so a failed run can be inspected after the
    fact, while the console follows ``verbose``.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.propagate = False

    # One CLI process may call main() several times; handlers must not stack.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_console_handler(console_level))
    if log_file is None:
        logger.setLevel(console_level)
        return logger

    logger.addHandler(_file_handler(Path(log_file), logging.DEBUG))
    logger.setLevel(logging.DEBUG)
    return logger


__all__ = ["CONSOLE_FORMAT", "ROOT_LOGGER", "configure_logging", "get_logger"]
