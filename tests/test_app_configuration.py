import json
from pathlib import Path

import pytest

from tickcord.configuration.app_configuration import DEFAULT_BIRTHDAY_MESSAGE, AnnouncementConfig, AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(
        "database_path: ./state/bot.db\n"
        "timer:\n"
        "  tick_seconds: 1800\n"
        "birthday:\n"
        "  channel_id: 1234\n"
        "  message: 'HB {mention}'\n"
        "announcements:\n"
        "  - name: lunch\n"
        "    hour: 12\n"
        "    channel_id: 55\n"
        "    content: Lunch time\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.database_path.name == "bot.db"
    assert config.tick_seconds == pytest.approx(1800.0)
    assert config.birthday_channel_id == 1234
    assert config.birthday_message == "HB {mention}"
    assert config.announcements == [AnnouncementConfig(name="lunch", hour=12, channel_id=55, content="Lunch time")]


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.tick_seconds == pytest.approx(3600.0)
    assert config.birthday_channel_id is None
    assert config.birthday_message == DEFAULT_BIRTHDAY_MESSAGE
    assert config.announcements == []
    assert config.database_path.name == "app.db"


def test_app_config_invalid_values_fall_back(config_path: Path) -> None:
    config_path.write_text(
        json.dumps(
            {
                "timer": {"tick_seconds": "soon"},
                "birthday": {"channel_id": "lobby"},
                "announcements": [{"name": "x"}, "nonsense"],
            }
        ),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.tick_seconds == pytest.approx(3600.0)
    assert config.birthday_channel_id is None
    assert config.announcements == []


def test_app_config_non_mapping_document(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.get("anything", 5) == 5
