import zlib
from pathlib import Path

import msgpack
import pytest
from fastapi.testclient import TestClient

from conftest import izl2_bytes
from izombie import Clone, encode, encode_to_string
from izombie.api import LevelApiSettings, create_app

_OCTET = {"Content-Type": "application/octet-stream"}


@pytest.fixture()
def levels_client(tmp_path: Path) -> TestClient:
    settings = LevelApiSettings(data_folder_path=tmp_path / "levels")
    return TestClient(create_app(settings=settings))


def test_upload_list_and_download(levels_client: TestClient, valid_clone: Clone) -> None:
    data = encode(valid_clone)

    created = levels_client.post(
        "/api/levels", params={"author": "Gardener"}, content=data, headers=_OCTET
    )
    assert created.status_code == 201
    body = created.json()
    assert body["id"] == 1
    assert body["name"] == "Test Level"
    assert body["author"] == "Gardener"
    assert body["version"] == 3

    listing = levels_client.get("/api/levels")
    assert listing.status_code == 200
    payload = listing.json()
    assert payload["pagination"]["total_items"] == 1
    assert payload["pagination"]["total_pages"] == 1
    assert payload["data"][0]["id"] == 1
    assert len(payload["data"][0]["thumbnail"]) == 2

    detail = levels_client.get("/api/levels/1")
    assert detail.status_code == 200
    assert detail.json()["thumbnail"][0][5] == 3

    download = levels_client.get("/api/levels/1/download")
    assert download.status_code == 200
    assert download.content == data
    assert 'filename="1.izl3"' in download.headers["content-disposition"]
    assert levels_client.get("/api/levels/1").json()["plays"] == 1


def test_upload_requires_octet_stream(levels_client: TestClient, valid_clone: Clone) -> None:
    response = levels_client.post(
        "/api/levels",
        params={"author": "Gardener"},
        content=encode(valid_clone),
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 415


def test_upload_rejects_invalid_level(levels_client: TestClient, make_clone) -> None:
    response = levels_client.post(
        "/api/levels",
        params={"author": "Gardener"},
        content=encode(make_clone(music="Grasswalk")),
        headers=_OCTET,
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "Invalid level data"
    assert detail["message"].endswith("Invalid music track.")


def test_upload_rejects_legacy_format(levels_client: TestClient) -> None:
    response = levels_client.post(
        "/api/levels",
        params={"author": "Gardener"},
        content=izl2_bytes({"name": "Old"}),
        headers=_OCTET,
    )

    assert response.status_code == 400
    assert "IZL2 is deprecated" in response.json()["detail"]["message"]


def test_unknown_level_returns_404(levels_client: TestClient) -> None:
    assert levels_client.get("/api/levels/99").status_code == 404
    assert levels_client.get("/api/levels/99/download").status_code == 404


def test_list_filters_and_page_size_limit(
    levels_client: TestClient, make_clone
) -> None:
    for name, author in (("One", "Alice"), ("Two", "Bob")):
        levels_client.post(
            "/api/levels",
            params={"author": author},
            content=encode(make_clone(name=name)),
            headers=_OCTET,
        )

    filtered = levels_client.get("/api/levels", params={"author": "Bob"}).json()
    assert [item["name"] for item in filtered["data"]] == ["Two"]

    assert levels_client.get("/api/levels", params={"page_size": 101}).status_code == 422


def test_decode_endpoint_accepts_string_form(
    levels_client: TestClient, valid_clone: Clone
) -> None:
    response = levels_client.post(
        "/api/levels/decode",
        content=encode_to_string(valid_clone),
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["format"] == 3
    assert payload["valid"] is True
    assert payload["reason"] is None
    assert payload["level"]["name"] == "Test Level"
    assert payload["izl3"].startswith("|")


def test_decode_endpoint_upgrades_legacy_bytes(levels_client: TestClient) -> None:
    response = levels_client.post(
        "/api/levels/decode",
        content=izl2_bytes({"name": "Old", "sun": "10"}),
        headers=_OCTET,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["format"] == 2
    assert payload["valid"] is False
    assert payload["reason"] == "Clone is missing required fields."
    assert payload["level"] == {"name": "Old", "sun": 10}
    assert payload["izl3"].startswith("|")


def test_decode_endpoint_rejects_unknown_text(levels_client: TestClient) -> None:
    response = levels_client.post(
        "/api/levels/decode",
        content="not-a-real-format",
        headers={"Content-Type": "text/plain"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown level data format"


def _izl3(raw: dict) -> bytes:
    return b"IZL3" + zlib.compress(msgpack.packb(raw, use_bin_type=True))


def _upload(client: TestClient, clone: Clone, author: str = "Gardener") -> dict:
    response = client.post(
        "/api/levels", params={"author": author}, content=encode(clone), headers=_OCTET
    )
    assert response.status_code == 201
    return response.json()


def test_upload_with_non_ascii_digit_keys_is_a_client_error(
    levels_client: TestClient, make_clone
) -> None:
    corrupt = levels_client.post(
        "/api/levels",
        params={"author": "Gardener"},
        content=_izl3({"3": "x", "²": 1}),
        headers=_OCTET,
    )
    accepted = levels_client.post(
        "/api/levels",
        params={"author": "Gardener"},
        content=encode(make_clone(extras={"²": 1})),
        headers=_OCTET,
    )

    assert corrupt.status_code == 400
    assert accepted.status_code == 201


def test_decode_endpoint_encodes_binary_extras(levels_client: TestClient) -> None:
    response = levels_client.post(
        "/api/levels/decode",
        content=_izl3({"3": "x", "blob": b"\xff\xfe"}),
        headers=_OCTET,
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["level"]["name"] == "x"
    assert payload["level"]["blob"] == "//4="


def test_list_sorting_and_version_filter(
    levels_client: TestClient, make_clone
) -> None:
    _upload(levels_client, make_clone(name="Played"))
    _upload(levels_client, make_clone(name="Fresh"))
    levels_client.get("/api/levels/1/download")

    def names(**params) -> list:
        payload = levels_client.get("/api/levels", params=params).json()
        return [item["name"] for item in payload["data"]]

    assert names() == ["Played", "Fresh"]
    assert names(reversed_order="true") == ["Fresh", "Played"]
    assert names(sort="recent") == ["Fresh", "Played"]
    assert names(version=3) == ["Played", "Fresh"]
    assert names(version=2) == []
    assert levels_client.get("/api/levels", params={"sort": "name"}).status_code == 422


def test_list_author_filter_matches_substring(
    levels_client: TestClient, valid_clone: Clone
) -> None:
    _upload(levels_client, valid_clone, author="Zombieboss")

    payload = levels_client.get("/api/levels", params={"author": "boss"}).json()

    assert payload["pagination"]["total_items"] == 1


def test_favorite_toggles_per_client(levels_client: TestClient, valid_clone: Clone) -> None:
    _upload(levels_client, valid_clone)

    first = levels_client.post("/api/levels/1/favorite")
    second = levels_client.post("/api/levels/1/favorite")

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["favorited"] is True
    assert first.json()["level"]["favorites"] == 1
    assert second.json()["favorited"] is False
    assert second.json()["level"]["favorites"] == 0
    assert levels_client.post("/api/levels/9/favorite").status_code == 404


def test_report_level(levels_client: TestClient, valid_clone: Clone) -> None:
    _upload(levels_client, valid_clone)

    response = levels_client.post("/api/levels/1/report", json={"reason": "Broken"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert levels_client.get("/api/levels/1").json()["reports"] == 1
    assert levels_client.post("/api/levels/9/report", json={}).status_code == 404


def test_report_level_when_reporting_is_disabled(
    tmp_path: Path, valid_clone: Clone
) -> None:
    settings = LevelApiSettings(data_folder_path=tmp_path, use_reporting=False)
    client = TestClient(create_app(settings=settings))
    _upload(client, valid_clone)

    response = client.post("/api/levels/1/report", json={"reason": "Broken"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Reporting is disabled"
    assert client.get("/api/levels/1").json()["reports"] == 0


def test_admin_edit_and_feature(levels_client: TestClient, valid_clone: Clone) -> None:
    _upload(levels_client, valid_clone)

    edited = levels_client.put(
        "/api/admin/levels/1", json={"name": "Renamed", "sun": 400}
    )
    featured = levels_client.post("/api/admin/levels/1/feature")
    unfeatured = levels_client.delete("/api/admin/levels/1/feature")

    assert edited.status_code == 200
    assert edited.json()["name"] == "Renamed"
    assert edited.json()["sun"] == 400
    assert len(edited.json()["thumbnail"]) == 2
    assert featured.json()["featured"] is True
    assert featured.json()["featured_at"] is not None
    assert unfeatured.json()["featured"] is False
    assert unfeatured.json()["featured_at"] is None

    download = levels_client.get("/api/levels/1/download")
    assert download.content.startswith(b"IZL3")
    assert levels_client.put("/api/admin/levels/9", json={"sun": 5}).status_code == 404
    assert (
        levels_client.put("/api/admin/levels/1", json={"author": "  "}).status_code
        == 400
    )


def test_admin_delete_level(levels_client: TestClient, valid_clone: Clone) -> None:
    _upload(levels_client, valid_clone)

    response = levels_client.delete("/api/admin/levels/1")

    assert response.status_code == 204
    assert levels_client.get("/api/levels/1").status_code == 404
    assert levels_client.get("/api/levels").json()["pagination"]["total_items"] == 0
    assert levels_client.delete("/api/admin/levels/1").status_code == 404
