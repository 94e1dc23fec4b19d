"""Configuration helpers for deploying the level sharing API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from ..service import DEFAULT_MAX_AUTHOR_LENGTH

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _normalise_path(value: str | None, *, default: Path) -> Path:
    if value is None:
        return default

    trimmed = value.strip()
    if not trimmed:
        return default

    return Path(trimmed).expanduser()


def _normalise_string(value: str | None, *, default: str) -> str:
    if value is None:
        return default

    trimmed = value.strip()
    return trimmed or default


def _normalise_bool(value: str | None, *, name: str, default: bool) -> bool:
    if value is None or not value.strip():
        return default

    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false).")


def _normalise_positive_int(value: str | None, *, name: str, default: int) -> int:
    if value is None or not value.strip():
        return default

    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a positive integer.") from exc
    if parsed < 1:
        raise ValueError(f"{name} must be greater than zero.")
    return parsed


@dataclass(frozen=True)
class LevelApiSettings:
    """Deployment settings for the level API.

    Values are read from ``IZOMBIE_*`` environment variables. Paths expand
    ``~`` and empty strings are treated as if the variable was unset.
    """

    data_folder_path: Path = Path("data")
    create_data_folder: bool = True
    max_author_length: int = DEFAULT_MAX_AUTHOR_LENGTH
    log_level: str = "INFO"
    use_reporting: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LevelApiSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            data_folder_path=_normalise_path(
                source.get("IZOMBIE_DATA_FOLDER_PATH"), default=Path("data")
            ),
            create_data_folder=_normalise_bool(
                source.get("IZOMBIE_CREATE_DATA_FOLDER"),
                name="IZOMBIE_CREATE_DATA_FOLDER",
                default=True,
            ),
            max_author_length=_normalise_positive_int(
                source.get("IZOMBIE_MAX_AUTHOR_LENGTH"),
                name="IZOMBIE_MAX_AUTHOR_LENGTH",
                default=DEFAULT_MAX_AUTHOR_LENGTH,
            ),
            log_level=_normalise_string(
                source.get("IZOMBIE_LOG_LEVEL"), default="INFO"
            ).upper(),
            use_reporting=_normalise_bool(
                source.get("IZOMBIE_USE_REPORTING"),
                name="IZOMBIE_USE_REPORTING",
                default=True,
            ),
        )


__all__ = ["LevelApiSettings"]
