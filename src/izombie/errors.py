"""Exception types raised by the level codec."""

from __future__ import annotations


class LevelCodecError(ValueError):
    """Base class for failures raised while decoding or encoding levels."""


class FormatError(LevelCodecError):
    """Raised when a payload does not match any known level format."""


class DecodeError(LevelCodecError):
    """Raised when a recognised format carries a corrupt body."""

    def __init__(self, message: str, *, format_version: int | None = None) -> None:
        super().__init__(message)
        self.format_version = format_version


class PackingError(LevelCodecError):
    """Raised when an ``lfValue`` sequence cannot be bit-packed."""


__all__ = ["DecodeError", "FormatError", "LevelCodecError", "PackingError"]
