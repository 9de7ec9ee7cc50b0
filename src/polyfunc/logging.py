"""Logging setup for polyfunc."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "polyfunc"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the polyfunc hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Attach a console handler (and optional file sink) to the polyfunc logger.

    Console output stays at WARNING unless ``verbose`` is set, so routine
    INFO records don't mix into command output. The file sink always keeps
    INFO and above (DEBUG with ``verbose``).
    """
    console_level = logging.DEBUG if verbose else logging.WARNING
    file_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(console_level if log_file is None else min(console_level, file_level))

    # Reset handlers so repeated CLI invocations don't duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(console_level)
    stream_handler.setFormatter(logging.Formatter("[polyfunc] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "get_logger"]
