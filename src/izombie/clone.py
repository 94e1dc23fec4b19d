"""Canonical in-memory representation of an I, Zombie level."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .errors import DecodeError

# Wire field name -> attribute name. Fields missing from a payload stay
# ``None`` so the validator can report them instead of the decoder failing.
_PLACEMENT_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("plantName", "plant_name"),
    ("plantRow", "plant_row"),
    ("plantCol", "plant_col"),
    ("zIndex", "z_index"),
    ("eleLeft", "ele_left"),
    ("eleTop", "ele_top"),
    ("eleWidth", "ele_width"),
    ("eleHeight", "ele_height"),
)

_CLONE_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("name", "name"),
    ("sun", "sun"),
    ("music", "music"),
    ("stripeCol", "stripe_col"),
    ("lfValue", "lf_value"),
    ("screenshot", "screenshot"),
    ("selectedZombies", "selected_zombies"),
)

PLACEMENT_REQUIRED_FIELDS: Tuple[str, ...] = ("zIndex", "plantRow", "plantCol", "plantName")
CLONE_REQUIRED_FIELDS: Tuple[str, ...] = (
    "plants",
    "music",
    "sun",
    "name",
    "lfValue",
    "stripeCol",
)

WATER_FLAG_INDEX = 3
WATER_FLAG_VALUE = 2


@dataclass
class Placement:
    """A single object placed on the lawn grid."""

    plant_name: Any = None
    plant_row: Any = None
    plant_col: Any = None
    z_index: Any = None
    ele_left: Any = None
    ele_top: Any = None
    ele_width: Any = None
    ele_height: Any = None
    extras: Dict[Any, Any] = field(default_factory=dict)

    def missing_fields(self) -> Tuple[str, ...]:
        """Return the wire names of required fields that are absent."""

        present = self.to_payload()
        return tuple(name for name in PLACEMENT_REQUIRED_FIELDS if name not in present)

    def to_payload(self) -> Dict[Any, Any]:
        """Return the placement keyed by wire field names."""

        payload: Dict[Any, Any] = {}
        for wire_name, attribute in _PLACEMENT_ATTRIBUTES:
            value = getattr(self, attribute)
            if value is not None:
                payload[wire_name] = value
        payload.update(self.extras)
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[Any, Any]) -> "Placement":
        """Build a placement from a mapping keyed by wire field names."""

        if not isinstance(payload, Mapping):
            raise DecodeError(
                f"Placement entries must be objects, got {type(payload).__name__}"
            )

        known = dict(_PLACEMENT_ATTRIBUTES)
        values: Dict[str, Any] = {}
        extras: Dict[Any, Any] = {}
        for key, value in payload.items():
            attribute = known.get(key) if isinstance(key, str) else None
            if attribute is None:
                extras[key] = value
            else:
                values[attribute] = value
        return cls(extras=extras, **values)


@dataclass
class Clone:
    """A decoded level.

    ``author`` is supplied out of band at upload time and is never part of
    the encoded payload. Unrecognised top-level keys are preserved in
    ``extras`` and written back unchanged by the encoder.
    """

    name: Any = None
    sun: Any = None
    music: Any = None
    stripe_col: Any = None
    lf_value: Any = None
    plants: List[Placement] | None = None
    screenshot: Any = None
    selected_zombies: Any = None
    author: str | None = None
    extras: Dict[Any, Any] = field(default_factory=dict)

    @property
    def is_water(self) -> bool:
        """Return ``True`` when the flag array marks a pool level."""

        flags = self.lf_value
        if not isinstance(flags, Sequence) or isinstance(flags, (str, bytes)):
            return False
        return len(flags) > WATER_FLAG_INDEX and flags[WATER_FLAG_INDEX] == WATER_FLAG_VALUE

    def missing_fields(self) -> Tuple[str, ...]:
        """Return the wire names of required top-level fields that are absent."""

        present = self.to_payload()
        return tuple(name for name in CLONE_REQUIRED_FIELDS if name not in present)

    def to_payload(self, *, include_author: bool = False) -> Dict[Any, Any]:
        """Return a JSON/msgpack friendly mapping keyed by wire field names."""

        payload: Dict[Any, Any] = {}
        for wire_name, attribute in _CLONE_ATTRIBUTES:
            value = getattr(self, attribute)
            if value is None:
                continue
            if wire_name == "lfValue" and isinstance(value, Sequence):
                value = list(value)
            payload[wire_name] = value
        if self.plants is not None:
            payload["plants"] = [placement.to_payload() for placement in self.plants]
        payload.update(self.extras)
        if include_author and self.author is not None:
            payload["author"] = self.author
        return payload

    @classmethod
    def from_payload(
        cls, payload: Mapping[Any, Any], *, author: str | None = None
    ) -> "Clone":
        """Build a clone from a mapping keyed by wire field names.

        Raises:
            DecodeError: If ``payload`` or its ``plants`` entry has the wrong
                shape.
        """

        if not isinstance(payload, Mapping):
            raise DecodeError(
                f"Level payload must be an object, got {type(payload).__name__}"
            )

        known = dict(_CLONE_ATTRIBUTES)
        values: Dict[str, Any] = {}
        extras: Dict[Any, Any] = {}
        plants: List[Placement] | None = None
        for key, value in payload.items():
            if key == "plants":
                plants = None if value is None else _placements_from_payload(value)
                continue
            if key == "author":
                if author is None and isinstance(value, str):
                    author = value
                continue
            attribute = known.get(key) if isinstance(key, str) else None
            if attribute is None:
                extras[key] = value
            else:
                values[attribute] = value

        return cls(plants=plants, author=author, extras=extras, **values)


def _placements_from_payload(value: Any) -> List[Placement]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise DecodeError(f"plants must be a list, got {type(value).__name__}")
    return [Placement.from_payload(entry) for entry in value]


__all__ = [
    "CLONE_REQUIRED_FIELDS",
    "Clone",
    "PLACEMENT_REQUIRED_FIELDS",
    "Placement",
]
