from __future__ import annotations

import logging
import os
from typing import Iterable

_FALSE_VALUES = {"0", "false", "no", "off"}

# Libraries that are chatty at INFO; they only follow the root level when debugging.
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in _FALSE_VALUES


def resolve_level(default_level: str = "INFO") -> int:
    """LOG_LEVEL wins over `default_level`; unknown names fall back to INFO."""

    name = (os.getenv("LOG_LEVEL") or default_level or "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    *,
    default_level: str = "INFO",
    fmt: str = "%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    force: bool = True,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> int:
    """Set up root logging for the CLI and return the effective level.

    LOG_FORCE=0 keeps any handlers that are already installed (useful under
    test runners that capture logs).
    """

    level = resolve_level(default_level)
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=force and _env_flag("LOG_FORCE", True))

    quiet_level = level if level <= logging.DEBUG else logging.WARNING
    for name in quiet:
        logging.getLogger(name).setLevel(quiet_level)
    return level
