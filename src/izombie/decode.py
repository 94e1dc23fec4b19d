"""Decoder for every historical I, Zombie level format.

Three wire generations are in circulation:

* ``IZL`` (format 1): zlib-compressed JSON keyed by field names, optionally
  followed by ``;`` and a base64 WebP screenshot.
* ``IZL2`` (format 2): zlib-compressed text in a private-use-character
  delimiter language keyed by numeric field codes.
* ``IZL3`` (format 3): the ``IZL3`` magic followed by zlib-compressed
  msgpack keyed by numeric field codes, with packed ``lfValue`` flags.

Byte payloads are what the storage layer holds; string payloads are what
the browser client embeds in URLs and JSON bodies.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import zlib
from enum import IntEnum
from typing import Any, Callable, Dict, List, Mapping

import msgpack
from msgpack.exceptions import UnpackException

from .clone import Clone
from .errors import DecodeError, FormatError
from .flags import unpack_flags
from .tables import field_name, resolve_placeable

logger = logging.getLogger(__name__)

IZL3_MAGIC = b"IZL3"
ZLIB_HEADER_BYTE = 0x78

IZL3_STRING_PREFIX = "|"
IZL2_STRING_PREFIX = "="
IZL_SCREENSHOT_SEPARATOR = ";"
# base64 of a default-level zlib header (0x78 0x9C).
IZL_BASE64_PREFIX = "eJ"
SCREENSHOT_DATA_URL_PREFIX = "data:image/webp;base64,"

# Delimiters of the format 2 text language.
LF_VALUE_SEPARATOR = "\ue000"
PLACEMENT_MARKER = "\ue001"
PLACEMENT_FIELD_SEPARATOR = "\ue002"
PLACEMENT_SEPARATOR = "\ue003"
PLACEMENT_KEY_SEPARATOR = "\ue004"
CLONE_KEY_SEPARATOR = "\ue005"
CLONE_FIELD_SEPARATOR = "\ue006"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class LevelFormat(IntEnum):
    """Wire format generations, numbered as stored on disk."""

    IZL = 1
    IZL2 = 2
    IZL3 = 3

    @property
    def file_extension(self) -> str:
        """File suffix used by the storage layer for this generation."""

        return "izl" if self is LevelFormat.IZL else f"izl{int(self)}"


def detect_file_format(data: bytes) -> LevelFormat:
    """Identify the format of a byte payload.

    Byte payloads never fail detection: anything that is neither ``IZL3``
    nor zlib-headed falls back to :attr:`LevelFormat.IZL`.
    """

    if data[:4] == IZL3_MAGIC:
        return LevelFormat.IZL3
    if data[:1] == bytes((ZLIB_HEADER_BYTE,)):
        return LevelFormat.IZL2
    return LevelFormat.IZL


def detect_string_format(text: str) -> LevelFormat:
    """Identify the format of a textual payload.

    Raises:
        FormatError: If no known prefix or separator is present.
    """

    if text.startswith(IZL3_STRING_PREFIX):
        return LevelFormat.IZL3
    if text.startswith(IZL2_STRING_PREFIX):
        return LevelFormat.IZL2
    if IZL_SCREENSHOT_SEPARATOR in text or text.startswith(IZL_BASE64_PREFIX):
        return LevelFormat.IZL
    raise FormatError("Unknown level data format")


def decode(payload: bytes | bytearray | memoryview | str) -> Clone:
    """Decode a level from either its byte or its string form."""

    if isinstance(payload, str):
        return decode_string(payload)
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return decode_bytes(bytes(payload))
    raise TypeError(f"payload must be bytes or str, got {type(payload).__name__}")


def decode_bytes(data: bytes) -> Clone:
    """Decode a stored level file of any generation.

    Raises:
        DecodeError: If the body of the detected format is corrupt.
    """

    level_format = detect_file_format(data)
    logger.debug("Decoding %s byte payload (%d bytes)", level_format.name, len(data))

    if level_format is LevelFormat.IZL3:
        return _decode_izl3_body(data[len(IZL3_MAGIC):])

    # Stored format 1 files are zlib-headed too, so the inflated text decides
    # between the JSON and the delimiter parser.
    text = _inflate_text(data, level_format)
    if text.lstrip().startswith("{"):
        return _parse_izl_text(text)
    return _parse_izl2_text(text)


def decode_string(text: str) -> Clone:
    """Decode a level from its textual (URL/JSON embeddable) form.

    Raises:
        FormatError: If the text carries no recognised format prefix.
        DecodeError: If the body of the detected format is corrupt.
    """

    level_format = detect_string_format(text)
    logger.debug("Decoding %s string payload (%d chars)", level_format.name, len(text))

    if level_format is LevelFormat.IZL3:
        return _decode_izl3_body(_decode_base64(text[1:], level_format))
    if level_format is LevelFormat.IZL2:
        compressed = _decode_base64(text[1:], level_format)
        return _parse_izl2_text(_inflate_text(compressed, level_format))

    json_part, _, screenshot = text.partition(IZL_SCREENSHOT_SEPARATOR)
    compressed = _decode_base64(json_part, level_format)
    payload = _load_json_object(_inflate_text(compressed, level_format))
    if screenshot:
        payload["screenshot"] = SCREENSHOT_DATA_URL_PREFIX + screenshot
    return Clone.from_payload(payload)


# -- format 3 -----------------------------------------------------------------


def _decode_izl3_body(body: bytes) -> Clone:
    packed = _inflate_if_compressed(body)
    try:
        raw = msgpack.unpackb(packed, raw=False, strict_map_key=False)
    except (UnpackException, ValueError, TypeError) as exc:
        raise DecodeError(
            f"Malformed msgpack level body: {exc}", format_version=3
        ) from exc

    if not isinstance(raw, Mapping):
        raise DecodeError(
            f"Level body must be a map, got {type(raw).__name__}", format_version=3
        )

    payload = _rename_keys(raw)
    plants = payload.get("plants")
    if isinstance(plants, list):
        payload["plants"] = [
            _rename_placement_keys(entry) if isinstance(entry, Mapping) else entry
            for entry in plants
        ]

    flags = payload.get("lfValue")
    if isinstance(flags, int) and not isinstance(flags, bool):
        payload["lfValue"] = unpack_flags(flags)

    return Clone.from_payload(payload)


def _inflate_if_compressed(body: bytes) -> bytes:
    """Inflate ``body`` unless it is already a bare msgpack document."""

    if body[:1] != bytes((ZLIB_HEADER_BYTE,)):
        return body
    try:
        return zlib.decompress(body)
    except zlib.error:
        logger.debug("IZL3 body starts with a zlib header but is not deflated")
        return body


def _rename_keys(raw: Mapping[Any, Any]) -> Dict[Any, Any]:
    renamed: Dict[Any, Any] = {}
    for key, value in raw.items():
        renamed[field_name(key) or key] = value
    return renamed


def _rename_placement_keys(raw: Mapping[Any, Any]) -> Dict[Any, Any]:
    renamed = _rename_keys(raw)
    if "plantName" in renamed:
        renamed["plantName"] = resolve_placeable(renamed["plantName"])
    return renamed


# -- format 2 -----------------------------------------------------------------


def _parse_int(text: str) -> int | None:
    """Parse a leading integer the way the browser client's ``parseInt`` does."""

    match = _LEADING_INT.match(text)
    if match is None:
        return None
    return int(match.group(1))


def _parse_number(text: str) -> int | float | None:
    stripped = text.strip()
    if not stripped:
        return 0
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        return float(stripped)
    except ValueError:
        return None


def _parse_flag_list(text: str) -> List[int | float | None]:
    return [_parse_number(item) for item in text.split(LF_VALUE_SEPARATOR)]


# Format 2 stores every value as text. Only these fields are converted;
# everything else, including ``plantName`` and layout hints, stays a string.
IZL2_CLONE_COERCIONS: Mapping[str, Callable[[str], Any]] = {
    "sun": _parse_int,
    "stripeCol": _parse_int,
    "lfValue": _parse_flag_list,
}
IZL2_PLACEMENT_COERCIONS: Mapping[str, Callable[[str], Any]] = {
    "zIndex": _parse_int,
    "plantRow": _parse_int,
    "plantCol": _parse_int,
}


def _parse_izl2_text(text: str) -> Clone:
    payload: Dict[str, Any] = {}
    for pair in text.split(CLONE_FIELD_SEPARATOR):
        key, value = _split_pair(pair, CLONE_KEY_SEPARATOR)
        name = field_name(key.strip())
        if name is None or value is None:
            continue

        if name == "plants":
            payload[name] = _parse_izl2_placements(value)
            continue

        coerce = IZL2_CLONE_COERCIONS.get(name)
        converted = coerce(value) if coerce is not None else value
        if converted is not None:
            payload[name] = converted

    return Clone.from_payload(payload)


def _parse_izl2_placements(text: str) -> List[Dict[str, Any]]:
    placements: List[Dict[str, Any]] = []
    for chunk in text.split(PLACEMENT_SEPARATOR):
        if not chunk:
            continue
        placement: Dict[str, Any] = {}
        # Each placement is wrapped in a marker character on both ends.
        for pair in chunk[1:-1].split(PLACEMENT_FIELD_SEPARATOR):
            key, value = _split_pair(pair, PLACEMENT_KEY_SEPARATOR)
            name = field_name(key.strip())
            if name is None or value is None:
                continue
            coerce = IZL2_PLACEMENT_COERCIONS.get(name)
            converted = coerce(value) if coerce is not None else value
            if converted is not None:
                placement[name] = converted
        placements.append(placement)
    return placements


def _split_pair(pair: str, separator: str) -> tuple[str, str | None]:
    parts = pair.split(separator)
    return parts[0], (parts[1] if len(parts) > 1 else None)


# -- format 1 -----------------------------------------------------------------


def _parse_izl_text(text: str) -> Clone:
    decoder = json.JSONDecoder()
    stripped = text.lstrip()
    try:
        payload, end = decoder.raw_decode(stripped)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Malformed JSON level body: {exc}", format_version=1) from exc

    if not isinstance(payload, dict):
        raise DecodeError("JSON level body must be an object", format_version=1)

    remainder = stripped[end:]
    if remainder.startswith(IZL_SCREENSHOT_SEPARATOR):
        screenshot = remainder[1:].strip()
        if screenshot:
            payload["screenshot"] = SCREENSHOT_DATA_URL_PREFIX + screenshot
    return Clone.from_payload(payload)


def _load_json_object(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Malformed JSON level body: {exc}", format_version=1) from exc
    if not isinstance(payload, dict):
        raise DecodeError("JSON level body must be an object", format_version=1)
    return payload


# -- shared helpers -----------------------------------------------------------


def _decode_base64(text: str, level_format: LevelFormat) -> bytes:
    cleaned = "".join(text.split())
    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(
            f"Invalid base64 in {level_format.name} payload",
            format_version=int(level_format),
        ) from exc


def _inflate_text(data: bytes, level_format: LevelFormat) -> str:
    try:
        inflated = zlib.decompress(data)
    except zlib.error as exc:
        raise DecodeError(
            f"Invalid deflate stream in {level_format.name} payload: {exc}",
            format_version=int(level_format),
        ) from exc
    try:
        return inflated.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(
            f"{level_format.name} payload is not valid UTF-8 text",
            format_version=int(level_format),
        ) from exc


__all__ = [
    "IZL3_MAGIC",
    "IZL2_CLONE_COERCIONS",
    "IZL2_PLACEMENT_COERCIONS",
    "LevelFormat",
    "decode",
    "decode_bytes",
    "decode_string",
    "detect_file_format",
    "detect_string_format",
]
