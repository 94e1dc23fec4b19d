"""Compact placement rows used by level listings to draw previews."""

from __future__ import annotations

from typing import Any, List

from .clone import Clone, Placement
from .tables import placeable_index

UNKNOWN_PLACEABLE_INDEX = -1


def thumbnail_row(placement: Placement) -> List[Any]:
    """Return ``[plantIndex, eleLeft, eleTop, eleWidth, eleHeight, zIndex]``."""

    name = placement.plant_name
    index = placeable_index(name) if isinstance(name, str) else None
    return [
        index if index is not None else UNKNOWN_PLACEABLE_INDEX,
        placement.ele_left,
        placement.ele_top,
        placement.ele_width,
        placement.ele_height,
        placement.z_index,
    ]


def extract_thumbnail(clone: Clone) -> List[List[Any]]:
    """Return one thumbnail row per placement, in placement order.

    Rows are left unsorted; renderers order them by ``zIndex`` themselves.
    """

    return [thumbnail_row(placement) for placement in clone.plants or ()]


__all__ = ["UNKNOWN_PLACEABLE_INDEX", "extract_thumbnail", "thumbnail_row"]
