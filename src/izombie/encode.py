"""Encoder producing the current ``IZL3`` level format."""

from __future__ import annotations

import base64
import logging
import zlib
from typing import Any, Dict, Iterable, List, Mapping, Tuple

import msgpack

from .clone import Clone, Placement
from .decode import IZL3_MAGIC, IZL3_STRING_PREFIX
from .flags import pack_flags
from .tables import field_code, placeable_index

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 9


def encode(clone: Clone) -> bytes:
    """Return the file form of ``clone``: ``IZL3`` magic plus payload.

    Raises:
        PackingError: If ``clone.lf_value`` cannot be bit-packed.
    """

    return IZL3_MAGIC + encode_payload(clone)


def encode_to_string(clone: Clone) -> str:
    """Return the ``|``-prefixed base64 string form of ``clone``."""

    return IZL3_STRING_PREFIX + base64.b64encode(encode_payload(clone)).decode("ascii")


def encode_payload(clone: Clone) -> bytes:
    """Return the deflated msgpack body shared by both output forms."""

    packed = msgpack.packb(_tiny_clone(clone), use_bin_type=True)
    compressed = zlib.compress(packed, COMPRESSION_LEVEL)
    logger.debug(
        "Encoded level %r: %d msgpack bytes, %d compressed",
        clone.name,
        len(packed),
        len(compressed),
    )
    return compressed


def _tiny_clone(clone: Clone) -> Dict[str, Any]:
    payload = clone.to_payload()
    entries: List[Tuple[str, Any]] = []
    for key, value in payload.items():
        if key == "lfValue" and isinstance(value, list):
            value = pack_flags(value)
        elif key == "plants" and clone.plants is not None:
            value = [_tiny_placement(placement) for placement in clone.plants]
        else:
            value = _normalise_numbers(value)
        entries.append((_tiny_key(key), value))
    return _ordered(entries)


def _tiny_placement(placement: Placement) -> Dict[str, Any]:
    entries: List[Tuple[str, Any]] = []
    for key, value in placement.to_payload().items():
        if key == "plantName" and isinstance(value, str):
            index = placeable_index(value)
            value = index if index is not None else value
        else:
            value = _normalise_numbers(value)
        entries.append((_tiny_key(key), value))
    return _ordered(entries)


def _tiny_key(key: Any) -> str:
    code = field_code(key) if isinstance(key, str) else None
    return str(code) if code is not None else str(key)


def _is_index_key(key: str) -> bool:
    return (
        key.isascii() and key.isdigit() and (key == "0" or not key.startswith("0"))
    )


def _ordered(entries: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Order map keys the way the browser client serialises objects.

    Integer-like keys come first in ascending numeric order, followed by the
    remaining keys in insertion order.
    """

    entries = list(entries)
    numeric = sorted(
        (entry for entry in entries if _is_index_key(entry[0])),
        key=lambda entry: int(entry[0]),
    )
    named = [entry for entry in entries if not _is_index_key(entry[0])]
    return dict(numeric + named)


def _normalise_numbers(value: Any) -> Any:
    # Integral floats are written as msgpack integers, matching the client.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, list):
        return [_normalise_numbers(item) for item in value]
    if isinstance(value, Mapping):
        return {key: _normalise_numbers(item) for key, item in value.items()}
    return value


__all__ = ["COMPRESSION_LEVEL", "encode", "encode_payload", "encode_to_string"]
