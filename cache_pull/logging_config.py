"""Central logging configuration utilities for cache_pull.

Logging stays on the standard library. The CLI calls `configure_logging`
once; library modules only ask for loggers through `get_logger`.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_LEVEL_ENV = "CACHE_PULL_LOG_LEVEL"

_LEVEL_MAP = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure root logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `CACHE_PULL_LOG_LEVEL`
    3. Fallback to `INFO`

    Unknown level names fall back to `INFO` and are reported once logging
    is up.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")

    invalid_level = None
    if isinstance(level, str):
        name = level.strip().upper()
        if name not in _LEVEL_MAP:
            invalid_level = level
        level = _LEVEL_MAP.get(name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )
    if invalid_level is not None:
        logging.getLogger("cache_pull").warning(
            "Invalid log level %r; falling back to INFO. Valid values: %s.",
            invalid_level,
            ", ".join(sorted(_LEVEL_MAP)),
        )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a project logger, configuring logging lazily on first access."""
    logger = logging.getLogger(name or "cache_pull")
    if not logging.getLogger().handlers:  # pragma: no cover - defensive
        configure_logging()
    return logger


__all__ = ["LOG_LEVEL_ENV", "configure_logging", "get_logger"]
