"""Test configuration for the level codec project."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import base64
import json
import zlib
from typing import Any, Callable, Iterable, Mapping

import pytest

from izombie import Clone, Placement
from izombie.tables import FIELD_CODES

IZL2_LF_SEPARATOR = "\ue000"
IZL2_PLACEMENT_MARKER = "\ue001"
IZL2_PLACEMENT_FIELD_SEPARATOR = "\ue002"
IZL2_PLACEMENT_SEPARATOR = "\ue003"
IZL2_PLACEMENT_KEY_SEPARATOR = "\ue004"
IZL2_CLONE_KEY_SEPARATOR = "\ue005"
IZL2_CLONE_FIELD_SEPARATOR = "\ue006"


def build_clone(**overrides: Any) -> Clone:
    """Return a level that passes every publication rule."""

    values: dict[str, Any] = {
        "name": "Test Level",
        "sun": 150,
        "music": "Cerebrawl",
        "stripe_col": 5,
        "lf_value": [0, 1, 1, 1, 1, 1],
        "plants": [
            Placement(
                plant_name="oPeashooter",
                plant_row=1,
                plant_col=0,
                z_index=3,
                ele_left=35,
                ele_top=110,
                ele_width=71,
                ele_height=71,
            ),
            Placement(
                plant_name="oWallNut",
                plant_row=2,
                plant_col=1,
                z_index=5,
                ele_left=115,
                ele_top=205,
                ele_width=65,
                ele_height=73,
            ),
        ],
        "selected_zombies": ["oZombie", "oConeheadZombie"],
    }
    values.update(overrides)
    return Clone(**values)


def izl2_text(fields: Mapping[str, str], placements: Iterable[Mapping[str, str]] = ()) -> str:
    """Serialise string fields with the format 2 delimiter language."""

    encoded_placements = [
        IZL2_PLACEMENT_MARKER
        + IZL2_PLACEMENT_FIELD_SEPARATOR.join(
            f"{FIELD_CODES[name]}{IZL2_PLACEMENT_KEY_SEPARATOR}{value}"
            for name, value in placement.items()
        )
        + IZL2_PLACEMENT_MARKER
        for placement in placements
    ]
    pairs = [
        f"{FIELD_CODES[name]}{IZL2_CLONE_KEY_SEPARATOR}{value}"
        for name, value in fields.items()
    ]
    if encoded_placements:
        pairs.append(
            f"{FIELD_CODES['plants']}{IZL2_CLONE_KEY_SEPARATOR}"
            + IZL2_PLACEMENT_SEPARATOR.join(encoded_placements)
        )
    return IZL2_CLONE_FIELD_SEPARATOR.join(pairs)


def izl2_bytes(fields: Mapping[str, str], placements: Iterable[Mapping[str, str]] = ()) -> bytes:
    return zlib.compress(izl2_text(fields, placements).encode("utf-8"))


def izl_string(payload: Mapping[str, Any], screenshot: str | None = None) -> str:
    """Return the format 1 string form of a JSON level."""

    body = base64.b64encode(zlib.compress(json.dumps(payload).encode("utf-8")))
    text = body.decode("ascii")
    if screenshot is not None:
        text += ";" + screenshot
    return text


SAMPLE_JSON_LEVEL: dict[str, Any] = {
    "name": "Legacy",
    "sun": 200,
    "music": "Cerebrawl",
    "stripeCol": 4,
    "lfValue": [0, 1, 1, 2, 1, 1],
    "plants": [
        {
            "plantName": "oLilyPad",
            "plantRow": 2,
            "plantCol": 1,
            "zIndex": 7,
            "eleLeft": 120,
            "eleTop": 290,
            "eleWidth": 71,
            "eleHeight": 71,
        }
    ],
}


@pytest.fixture()
def valid_clone() -> Clone:
    return build_clone()


@pytest.fixture()
def make_clone() -> Callable[..., Clone]:
    """Factory fixture producing valid levels with selected overrides."""

    return build_clone


__all__ = [
    "SAMPLE_JSON_LEVEL",
    "build_clone",
    "izl2_bytes",
    "izl2_text",
    "izl_string",
    "make_clone",
    "valid_clone",
]
