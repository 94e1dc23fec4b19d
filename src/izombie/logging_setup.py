"""Process-wide logging configuration for the CLI and the API."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Raises:
        ValueError: If ``level`` is not a known logging level name.
    """

    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
    else:
        resolved = level

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("izombie").setLevel(resolved)


__all__ = ["LOG_FORMAT", "configure_logging"]
