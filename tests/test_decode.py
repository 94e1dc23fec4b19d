import base64
import json
import zlib

import msgpack
import pytest

from conftest import (
    IZL2_LF_SEPARATOR,
    SAMPLE_JSON_LEVEL,
    izl2_bytes,
    izl_string,
)
from izombie import (
    DecodeError,
    FormatError,
    LevelFormat,
    decode,
    decode_bytes,
    decode_string,
    detect_file_format,
    detect_string_format,
)
from izombie.decode import SCREENSHOT_DATA_URL_PREFIX


def _izl3_body(payload: dict) -> bytes:
    return zlib.compress(msgpack.packb(payload, use_bin_type=True))


def test_detect_file_format_by_prefix() -> None:
    assert detect_file_format(b"IZL3anything at all") is LevelFormat.IZL3
    assert detect_file_format(b"\x78\x9c") is LevelFormat.IZL2
    assert detect_file_format(b"\x78\x01") is LevelFormat.IZL2
    assert detect_file_format(b"{}") is LevelFormat.IZL
    assert detect_file_format(b"") is LevelFormat.IZL


def test_detect_string_format_by_prefix() -> None:
    assert detect_string_format("|abc") is LevelFormat.IZL3
    assert detect_string_format("=abc") is LevelFormat.IZL2
    assert detect_string_format("eJxLTA") is LevelFormat.IZL
    assert detect_string_format("abc;def") is LevelFormat.IZL


def test_unknown_string_format_is_rejected() -> None:
    with pytest.raises(FormatError, match="Unknown level data format"):
        decode_string("not-a-real-format")


def test_decode_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        decode(42)  # type: ignore[arg-type]


def test_decode_izl3_bytes_with_string_keys() -> None:
    payload = {
        "1": 1 | 1 << 2 | 2 << 6,
        "2": "Cerebrawl",
        "3": "Keyed",
        "4": [{"8": 2, "9": 17, "10": 3, "11": 4}],
        "6": 6,
        "7": 300,
    }
    clone = decode_bytes(b"IZL3" + _izl3_body(payload))

    assert clone.name == "Keyed"
    assert clone.music == "Cerebrawl"
    assert clone.sun == 300
    assert clone.stripe_col == 6
    assert clone.lf_value == [1, 1, 0, 2, 0, 0]
    assert clone.is_water
    placement = clone.plants[0]
    assert placement.plant_name == "oILilyPad"
    assert (placement.plant_row, placement.plant_col, placement.z_index) == (3, 2, 4)


def test_decode_izl3_accepts_integer_keys_and_unknown_fields() -> None:
    payload = {3: "Ints", 7: 25, "selectedZombies": ["oZombie"], 99: "kept"}
    clone = decode_bytes(b"IZL3" + _izl3_body(payload))

    assert clone.name == "Ints"
    assert clone.sun == 25
    assert clone.selected_zombies == ["oZombie"]
    assert clone.extras == {99: "kept"}


def test_decode_izl3_keeps_out_of_range_plant_index() -> None:
    payload = {"4": [{"9": 500}, {"9": "oCustomThing"}]}
    clone = decode_bytes(b"IZL3" + _izl3_body(payload))

    assert clone.plants[0].plant_name == 500
    assert clone.plants[1].plant_name == "oCustomThing"


def test_decode_izl3_tolerates_uncompressed_body() -> None:
    raw = msgpack.packb({"3": "Raw", "7": 50}, use_bin_type=True)
    clone = decode_bytes(b"IZL3" + raw)

    assert clone.name == "Raw"
    assert clone.sun == 50


def test_decode_izl3_string_without_padding() -> None:
    body = _izl3_body({"3": "Padded?", "7": 10})
    text = "|" + base64.b64encode(body).decode("ascii").rstrip("=")

    assert decode_string(text).name == "Padded?"


def test_decode_izl3_malformed_body() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_bytes(b"IZL3" + zlib.compress(b"\xc1\xc1\xc1"))
    assert excinfo.value.format_version == 3


def test_decode_izl3_body_must_be_a_map() -> None:
    with pytest.raises(DecodeError):
        decode_bytes(b"IZL3" + _izl3_body([1, 2, 3]))  # type: ignore[arg-type]


def test_decode_izl2_bytes_coerces_only_listed_fields() -> None:
    data = izl2_bytes(
        {
            "name": "Old School",
            "sun": "250",
            "stripeCol": "5px",
            "music": "Cerebrawl",
            "lfValue": IZL2_LF_SEPARATOR.join(["0", "1", "1", "2", "1", "1"]),
        },
        [
            {
                "plantName": "oPeashooter",
                "plantRow": "1",
                "plantCol": "0",
                "zIndex": "3",
                "eleLeft": "35",
            },
            {
                "plantName": "oWallNut",
                "plantRow": "2",
                "plantCol": "1",
                "zIndex": "x",
            },
        ],
    )
    clone = decode_bytes(data)

    assert clone.name == "Old School"
    assert clone.sun == 250
    assert clone.stripe_col == 5
    assert clone.lf_value == [0, 1, 1, 2, 1, 1]
    assert clone.is_water
    first, second = clone.plants
    assert first.plant_row == 1
    assert first.plant_col == 0
    assert first.z_index == 3
    assert first.ele_left == "35"
    assert second.z_index is None


def test_decode_izl2_string_form() -> None:
    data = izl2_bytes({"name": "Shared", "sun": "75"})
    text = "=" + base64.b64encode(data).decode("ascii")

    clone = decode_string(text)

    assert clone.name == "Shared"
    assert clone.sun == 75
    assert clone.plants is None


def test_decode_izl2_invalid_deflate_stream() -> None:
    with pytest.raises(DecodeError):
        decode_bytes(b"\x78\x9cnot really deflate")


def test_decode_izl_string_with_screenshot() -> None:
    clone = decode_string(izl_string(SAMPLE_JSON_LEVEL, screenshot="UklGRg"))

    assert clone.name == "Legacy"
    assert clone.stripe_col == 4
    assert clone.plants[0].plant_name == "oLilyPad"
    assert clone.screenshot == SCREENSHOT_DATA_URL_PREFIX + "UklGRg"


def test_decode_izl_string_without_screenshot() -> None:
    clone = decode_string(izl_string(SAMPLE_JSON_LEVEL))

    assert clone.screenshot is None
    assert clone.lf_value == [0, 1, 1, 2, 1, 1]


def test_decode_stored_izl_file() -> None:
    data = zlib.compress((json.dumps(SAMPLE_JSON_LEVEL) + ";UklGRg").encode("utf-8"))
    clone = decode_bytes(data)

    assert clone.name == "Legacy"
    assert clone.screenshot == SCREENSHOT_DATA_URL_PREFIX + "UklGRg"


def test_decode_izl_string_rejects_bad_base64() -> None:
    with pytest.raises(DecodeError):
        decode_string("eJ!!!;abc")


def test_decode_dispatches_on_type() -> None:
    data = izl2_bytes({"name": "Dispatch"})
    assert decode(data).name == "Dispatch"
    assert decode(bytearray(data)).name == "Dispatch"


@pytest.mark.parametrize("key", ["²", "١", "①"])
def test_decode_izl3_keeps_non_ascii_digit_keys_as_extras(key: str) -> None:
    body = zlib.compress(msgpack.packb({"3": "Odd keys", key: 1}, use_bin_type=True))

    clone = decode_bytes(b"IZL3" + body)

    assert clone.name == "Odd keys"
    assert clone.extras == {key: 1}
