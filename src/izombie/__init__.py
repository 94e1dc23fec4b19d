"""Codec, validator and storage for shared I, Zombie levels."""

from .clone import Clone, Placement
from .decode import (
    LevelFormat,
    decode,
    decode_bytes,
    decode_string,
    detect_file_format,
    detect_string_format,
)
from .encode import encode, encode_payload, encode_to_string
from .errors import DecodeError, FormatError, LevelCodecError, PackingError
from .flags import pack_flags, unpack_flags
from .service import (
    LevelNotFoundError,
    LevelRejectedError,
    LevelService,
    LevelSort,
    UnsupportedVersionError,
)
from .storage import (
    FileLevelStore,
    InMemoryLevelStore,
    LevelDecodeResult,
    LevelRecord,
    LevelStore,
    decode_level_from_store,
)
from .thumbnail import extract_thumbnail
from .validate import ValidationResult, validate

__all__ = [
    "Clone",
    "Placement",
    "LevelFormat",
    "decode",
    "decode_bytes",
    "decode_string",
    "detect_file_format",
    "detect_string_format",
    "encode",
    "encode_payload",
    "encode_to_string",
    "LevelCodecError",
    "FormatError",
    "DecodeError",
    "PackingError",
    "pack_flags",
    "unpack_flags",
    "ValidationResult",
    "validate",
    "extract_thumbnail",
    "LevelStore",
    "InMemoryLevelStore",
    "FileLevelStore",
    "LevelRecord",
    "LevelDecodeResult",
    "decode_level_from_store",
    "LevelService",
    "LevelSort",
    "LevelNotFoundError",
    "LevelRejectedError",
    "UnsupportedVersionError",
]
