from pathlib import Path

import pytest

from guildkeeper.configuration.app_configuration import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_TICK_INTERVAL,
    AppConfig,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_path.write_text(
        "scheduler:\n"
        "  tick_interval_seconds: 2.5\n"
        "database:\n"
        f"  path: {tmp_path / 'guild.db'}\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.tick_interval == pytest.approx(2.5)
    assert config.database_path == (tmp_path / "guild.db").resolve()
    assert config.get("scheduler") == {"tick_interval_seconds": 2.5}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.tick_interval == DEFAULT_TICK_INTERVAL
    assert config.database_path == Path(DEFAULT_DATABASE_PATH).resolve()


@pytest.mark.parametrize("raw", ["0", "-1", "soon", "[1, 2]"])
def test_invalid_tick_interval_falls_back(config_path: Path, raw: str) -> None:
    config_path.write_text(f"scheduler:\n  tick_interval_seconds: {raw}\n", encoding="utf-8")

    assert AppConfig(config_path).tick_interval == DEFAULT_TICK_INTERVAL


def test_non_mapping_document_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}


def test_malformed_yaml_is_ignored(config_path: Path) -> None:
    config_path.write_text("scheduler: [unclosed\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("scheduler:\n  tick_interval_seconds: 1\n", encoding="utf-8")
    config = AppConfig(config_path)

    config_path.write_text("scheduler:\n  tick_interval_seconds: 5\n", encoding="utf-8")
    config.reload()

    assert config.tick_interval == 5.0
