"""Game-design rules a level must satisfy before it can be published."""

from __future__ import annotations

import logging
from collections import Counter
from typing import AbstractSet, Any, Callable, Dict, NamedTuple, Sequence, Set, Tuple

from .clone import Clone
from .tables import (
    ALLOWED_MUSIC,
    ALLOWED_PLACEABLES,
    ALLOWED_ZOMBIES,
    STRIPE_BYPASS_PLACEABLES,
)

logger = logging.getLogger(__name__)

MAX_PLANTS_PER_TILE = 3
MAX_LF_LENGTH = 7
MAX_SUN = 9990
MIN_STRIPE_COL = 3
MAX_STRIPE_COL = 8

WATER_BASE_CAPACITY = 108
LAND_BASE_CAPACITY = 90
WATER_CAPACITY_PER_COLUMN = 6
LAND_CAPACITY_PER_COLUMN = 5
DEFAULT_EXTRA_COLUMNS = 2


class ValidationResult(NamedTuple):
    """Outcome of :func:`validate`; unpacks as ``(ok, reason)``."""

    ok: bool
    reason: str | None = None


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_one_of(value: Any, allowed: AbstractSet[str]) -> bool:
    return isinstance(value, str) and value in allowed


def _tile_key(placement: Any) -> str:
    return f"{placement.plant_row}-{placement.plant_col}"


def _has_required_fields(clone: Clone) -> bool:
    return not clone.missing_fields()


def _plants_have_required_fields(clone: Clone) -> bool:
    for placement in clone.plants or ():
        missing = placement.missing_fields()
        if missing:
            logger.debug("Placement %r is missing %s", placement, ", ".join(missing))
            return False
    return True


def _max_plants_per_tile(clone: Clone) -> bool:
    per_tile = Counter(_tile_key(placement) for placement in clone.plants or ())
    return all(count <= MAX_PLANTS_PER_TILE for count in per_tile.values())


def _lf_value_length(clone: Clone) -> bool:
    return _is_sequence(clone.lf_value) and len(clone.lf_value) <= MAX_LF_LENGTH


def _sun_within_limit(clone: Clone) -> bool:
    sun = _number(clone.sun)
    return sun is not None and sun <= MAX_SUN


def _valid_music(clone: Clone) -> bool:
    return clone.music in ALLOWED_MUSIC


def _valid_stripe_col(clone: Clone) -> bool:
    stripe_col = _number(clone.stripe_col)
    return stripe_col is not None and MIN_STRIPE_COL <= stripe_col <= MAX_STRIPE_COL


def plant_capacity(clone: Clone) -> int:
    """Return the maximum number of placements ``clone`` may hold.

    Pool levels start from a larger base and gain more room per column the
    stripe is moved right.
    """

    stripe_col = _number(clone.stripe_col)
    extra = int(stripe_col) - 1 if stripe_col is not None else DEFAULT_EXTRA_COLUMNS
    if clone.is_water:
        return WATER_BASE_CAPACITY + extra * WATER_CAPACITY_PER_COLUMN
    return LAND_BASE_CAPACITY + extra * LAND_CAPACITY_PER_COLUMN


def _valid_plant_count(clone: Clone) -> bool:
    return len(clone.plants or ()) <= plant_capacity(clone)


def _no_plants_after_stripe(clone: Clone) -> bool:
    stripe_col = _number(clone.stripe_col)
    if stripe_col is None:
        return False
    for placement in clone.plants or ():
        if _is_one_of(placement.plant_name, STRIPE_BYPASS_PLACEABLES):
            continue
        column = _number(placement.plant_col)
        # plantCol is 0-indexed; the stripe column is 1-indexed.
        if column is None or column + 1 > stripe_col:
            return False
    return True


def _no_duplicate_plants_in_tile(clone: Clone) -> bool:
    seen: Dict[str, Set[str]] = {}
    for placement in clone.plants or ():
        names = seen.setdefault(_tile_key(placement), set())
        name = repr(placement.plant_name)
        if name in names:
            return False
        names.add(name)
    return True


def _no_duplicate_zombies(clone: Clone) -> bool:
    zombies = clone.selected_zombies
    if zombies is None:
        return True
    if not _is_sequence(zombies):
        return False
    return len(set(map(str, zombies))) == len(zombies)


def _only_allowed_plants(clone: Clone) -> bool:
    for placement in clone.plants or ():
        if not _is_one_of(placement.plant_name, ALLOWED_PLACEABLES):
            logger.debug("%r is not a publishable placeable", placement.plant_name)
            return False
    return True


def _only_allowed_zombies(clone: Clone) -> bool:
    zombies = clone.selected_zombies or ()
    return all(_is_one_of(zombie, ALLOWED_ZOMBIES) for zombie in zombies)


# Evaluated in order; the first failing rule decides the outcome. New rules
# go at the end.
RULES: Tuple[Tuple[str, Callable[[Clone], bool]], ...] = (
    ("Clone is missing required fields.", _has_required_fields),
    ("Plants are missing required fields.", _plants_have_required_fields),
    ("Too many plants in one tile.", _max_plants_per_tile),
    ("LF value length exceeds 7.", _lf_value_length),
    ("Sun value exceeds 9990.", _sun_within_limit),
    ("Invalid music track.", _valid_music),
    ("Invalid stripe column.", _valid_stripe_col),
    ("Too many plants in the clone.", _valid_plant_count),
    ("Plants are placed after the stripe column.", _no_plants_after_stripe),
    ("Duplicate plant types in the same tile.", _no_duplicate_plants_in_tile),
    ("Duplicate zombies selected.", _no_duplicate_zombies),
    ("Clone contains invalid plants.", _only_allowed_plants),
    ("Clone contains invalid zombies.", _only_allowed_zombies),
)


def validate(clone: Clone) -> ValidationResult:
    """Check ``clone`` against every publication rule.

    Returns ``(True, None)`` for an acceptable level, otherwise ``False``
    with the message of the first rule that failed. Rule violations are
    never raised.
    """

    for message, rule in RULES:
        if not rule(clone):
            logger.info("Level %r failed validation: %s", clone.name, message)
            return ValidationResult(False, message)
    return ValidationResult(True, None)


__all__ = ["RULES", "ValidationResult", "plant_capacity", "validate"]
