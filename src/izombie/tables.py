"""Static lookup tables shared by the level encoder, decoder and validator."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

# Ordered field names; each name's code is its position plus one. The browser
# client ships the same list, so entries may only ever be appended.
_FIELD_NAMES: tuple[str, ...] = (
    # clone
    "lfValue",
    "music",
    "name",
    "plants",
    "screenshot",
    "stripeCol",
    "sun",
    # placements
    "plantCol",
    "plantName",
    "plantRow",
    "zIndex",
    "eleLeft",
    "eleTop",
    "eleWidth",
    "eleHeight",
)

FIELD_CODES: Mapping[str, int] = MappingProxyType(
    {name: index + 1 for index, name in enumerate(_FIELD_NAMES)}
)
FIELD_NAMES: Mapping[int, str] = MappingProxyType(
    {code: name for name, code in FIELD_CODES.items()}
)

CLONE_FIELDS: frozenset[str] = frozenset(_FIELD_NAMES[:7])
PLACEMENT_FIELDS: frozenset[str] = frozenset(_FIELD_NAMES[7:])

# Every placeable object the game has ever known, in wire order. A
# placement's ``plantName`` may be serialised as an index into this tuple.
PLACEABLE_NAMES: tuple[str, ...] = (
    "oPeashooter",
    "oSunFlower",
    "oCherryBomb",
    "oWallNut",
    "oPotatoMine",
    "oSnowPea",
    "oChomper",
    "oRepeater",
    "oPuffShroom",
    "oSunShroom",
    "oFumeShroom",
    "oGraveBuster",
    "oHypnoShroom",
    "oScaredyShroom",
    "oIceShroom",
    "oDoomShroom",
    "oLilyPad",
    "oILilyPad",
    "oSquash",
    "oThreepeater",
    "oTangleKlep",
    "oJalapeno",
    "oSpikeweed",
    "oTorchwood",
    "oTallNut",
    "oCactus",
    "oPlantern",
    "oSplitPea",
    "oStarfruit",
    "oPumpkinHead",
    "oFlowerPot",
    "oCoffeeBean",
    "oGarlic",
    "oSeaShroom",
    "oOxygen",
    "ostar",
    "oTTS",
    "oGun",
    "oSeaAnemone",
    "oGatlingPea",
    "oGloomShroom",
    "oTwinSunflower",
    "oSpikerock",
    "oTenManNut",
    "oSnowRepeater",
    "oCattail",
    "oLotusRoot",
    "oIceFumeShroom",
    "oLaserBean",
    "oBigChomper",
    "oFlamesMushroom",
)

PLACEABLE_INDEX: Mapping[str, int] = MappingProxyType(
    {name: index for index, name in enumerate(PLACEABLE_NAMES)}
)

# Publishable subset of ``PLACEABLE_NAMES``.
ALLOWED_PLACEABLES: frozenset[str] = frozenset(
    {
        "oPeashooter",
        "oSunFlower",
        "oWallNut",
        "oPotatoMine",
        "oSnowPea",
        "oChomper",
        "oRepeater",
        "oPuffShroom",
        "oFumeShroom",
        "oHypnoShroom",
        "oScaredyShroom",
        "oLilyPad",
        "oILilyPad",
        "oSquash",
        "oThreepeater",
        "oTangleKlep",
        "oSpikeweed",
        "oTorchwood",
        "oTallNut",
        "oSeaShroom",
        "oCactus",
        "oSplitPea",
        "oStarfruit",
        "oPumpkinHead",
        "oFlowerPot",
        "oGarlic",
        "oGatlingPea",
        "oGloomShroom",
        "oSpikerock",
    }
)

# Objects that may sit past the stripe column.
STRIPE_BYPASS_PLACEABLES: frozenset[str] = frozenset(
    {"oLilyPad", "oILilyPad", "oFlowerPot", "oPumpkinHead"}
)

ALLOWED_ZOMBIES: frozenset[str] = frozenset(
    {
        "oZombie",
        "oConeheadZombie",
        "oBucketheadZombie",
        "oPoleVaultingZombie",
        "oNewspaperZombie",
        "oScreenDoorZombie",
        "oFootballZombie",
        "oDancingZombie",
        "oBackupDancer",
        "oSnorkelZombie",
        "oDolphinRiderZombie",
        "oJackinTheBoxZombie",
        "oBalloonZombie",
        "oDiggerZombie",
        "oPogoZombie",
        "oBungeeZombie",
        "oLadderZombie",
        "oCatapultZombie",
        "oGargantuar",
        "oImp",
    }
)

ALLOWED_MUSIC: tuple[str, ...] = ("Cerebrawl",)


def field_code(name: str) -> int | None:
    """Return the wire code for ``name`` or ``None`` when it has none."""

    return FIELD_CODES.get(name)


def field_name(code: object) -> str | None:
    """Resolve a wire key (integer or decimal string) to its field name."""

    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return FIELD_NAMES.get(code)
    if isinstance(code, str) and code.isascii() and code.isdigit():
        return FIELD_NAMES.get(int(code))
    return None


def placeable_index(name: str) -> int | None:
    """Return the wire index of a placeable object name, if it has one."""

    return PLACEABLE_INDEX.get(name)


def resolve_placeable(value: object) -> object:
    """Map a numeric ``plantName`` back to its name.

    Out-of-range indices are returned unchanged so old payloads still decode.
    """

    if isinstance(value, bool) or not isinstance(value, int):
        return value
    if 0 <= value < len(PLACEABLE_NAMES):
        return PLACEABLE_NAMES[value]
    return value


__all__ = [
    "ALLOWED_MUSIC",
    "ALLOWED_PLACEABLES",
    "ALLOWED_ZOMBIES",
    "CLONE_FIELDS",
    "FIELD_CODES",
    "FIELD_NAMES",
    "PLACEABLE_INDEX",
    "PLACEABLE_NAMES",
    "PLACEMENT_FIELDS",
    "STRIPE_BYPASS_PLACEABLES",
    "field_code",
    "field_name",
    "placeable_index",
    "resolve_placeable",
]
