from pathlib import Path

import pytest

from izombie.api import LevelApiSettings


def test_defaults_when_environment_is_empty() -> None:
    settings = LevelApiSettings.from_env({})

    assert settings == LevelApiSettings()
    assert settings.data_folder_path == Path("data")
    assert settings.create_data_folder is True
    assert settings.max_author_length == 11
    assert settings.log_level == "INFO"


def test_values_are_read_from_environment(tmp_path: Path) -> None:
    settings = LevelApiSettings.from_env(
        {
            "IZOMBIE_DATA_FOLDER_PATH": f"  {tmp_path}  ",
            "IZOMBIE_CREATE_DATA_FOLDER": "no",
            "IZOMBIE_MAX_AUTHOR_LENGTH": "20",
            "IZOMBIE_LOG_LEVEL": "debug",
        }
    )

    assert settings.data_folder_path == tmp_path
    assert settings.create_data_folder is False
    assert settings.max_author_length == 20
    assert settings.log_level == "DEBUG"


def test_blank_values_fall_back_to_defaults() -> None:
    settings = LevelApiSettings.from_env(
        {
            "IZOMBIE_DATA_FOLDER_PATH": "   ",
            "IZOMBIE_MAX_AUTHOR_LENGTH": "",
            "IZOMBIE_LOG_LEVEL": " ",
        }
    )

    assert settings == LevelApiSettings()


@pytest.mark.parametrize(
    "environ, message",
    [
        ({"IZOMBIE_MAX_AUTHOR_LENGTH": "many"}, "must be a positive integer"),
        ({"IZOMBIE_MAX_AUTHOR_LENGTH": "0"}, "must be greater than zero"),
        ({"IZOMBIE_CREATE_DATA_FOLDER": "maybe"}, "must be a boolean"),
    ],
)
def test_invalid_values_raise(environ: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        LevelApiSettings.from_env(environ)


def test_reporting_can_be_disabled() -> None:
    assert LevelApiSettings.from_env({}).use_reporting is True
    assert LevelApiSettings.from_env({"IZOMBIE_USE_REPORTING": "false"}).use_reporting is False
