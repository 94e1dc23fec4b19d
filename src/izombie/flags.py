"""Bit packing for the ``lfValue`` level flag array."""

from __future__ import annotations

from typing import List, Sequence

from .errors import PackingError

MIN_FLAGS = 6
MAX_FLAGS = 9
_FLAG_BITS = 2
_FLAG_MASK = 0b11
_LENGTH_SHIFT = 14
# Slot 7 would land on the length bits, so flags from index 7 onwards skip
# over them. Six and seven flag arrays keep the exact 16-bit client layout.
_LENGTH_SLOT = _LENGTH_SHIFT // _FLAG_BITS


def _shift_for(index: int) -> int:
    slot = index if index < _LENGTH_SLOT else index + 1
    return slot * _FLAG_BITS


def pack_flags(values: Sequence[int]) -> int:
    """Pack 6 to 9 two-bit values into a single integer.

    Value ``i`` occupies bits ``2*i`` and ``2*i + 1``; the sequence length
    minus six is stored in bits 14-15. Values from index 7 onwards sit one
    slot higher so they stay clear of the length bits. Six and seven value
    arrays are bit-identical with the browser client; eight and nine value
    arrays are not, and the client reads them back with a wrong tail.

    Raises:
        PackingError: If the length or any element is out of range.
    """

    if len(values) < MIN_FLAGS or len(values) > MAX_FLAGS:
        raise PackingError(
            f"lfValue must contain {MIN_FLAGS}-{MAX_FLAGS} elements, got {len(values)}"
        )

    packed = 0
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 3:
            raise PackingError(
                f"lfValue[{index}] must be an integer 0-3, got {value!r}"
            )
        packed |= value << _shift_for(index)

    packed |= (len(values) - MIN_FLAGS) << _LENGTH_SHIFT
    return packed


def unpack_flags(packed: int) -> List[int]:
    """Inverse of :func:`pack_flags`. Accepts any integer."""

    length = ((packed >> _LENGTH_SHIFT) & _FLAG_MASK) + MIN_FLAGS
    return [(packed >> _shift_for(index)) & _FLAG_MASK for index in range(length)]


__all__ = ["MAX_FLAGS", "MIN_FLAGS", "pack_flags", "unpack_flags"]
