"""Logging utilities for cargo-cgp commands."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, TextIO

_LOGGER_NAME = "cargo_cgp"
_CONSOLE_FORMAT = "[cargo-cgp] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Read when -v is not given, e.g. ``CARGO_CGP_LOG=info cargo cgp check``.
LOG_LEVEL_ENV = "CARGO_CGP_LOG"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the cargo_cgp hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def console_level(*, verbose: bool = False, environ: Mapping[str, str] | None = None) -> int:
    """Resolve the console level from ``-v`` or ``$CARGO_CGP_LOG``; WARNING otherwise."""
    if verbose:
        return logging.DEBUG
    env = os.environ if environ is None else environ
    requested = env.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(requested) if requested else None
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
    environ: Mapping[str, str] | None = None,
) -> logging.Logger:
    """Attach console and optional file handlers to the cargo_cgp logger.

    Rendered diagnostics own stdout, so the console handler writes to stderr
    unless ``stream`` says otherwise. The file sink always records DEBUG.
    """
    level = console_level(verbose=verbose, environ=environ)
    logger = logging.getLogger(_LOGGER_NAME)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if log_file is not None else level)
    return logger


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "console_level", "get_logger"]
