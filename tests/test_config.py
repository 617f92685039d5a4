from __future__ import annotations

from pathlib import Path

from cyberui.config import Settings, load_settings


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "nope.yaml")

    assert settings == Settings()
    assert settings.mqtt.namespace == "teslamate/cars"
    assert settings.mqtt.max_reconnect_interval == 10.0
    assert settings.server.api_key == ""


def test_yaml_overrides(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n"
        "  api_key: s3cret\n"
        "  cors_origins: [\"https://ui.example\"]\n"
        "mqtt:\n"
        "  host: broker\n"
        "  car_ids: [1, 2]\n",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.server.api_key == "s3cret"
    assert settings.server.cors_origins == ["https://ui.example"]
    assert settings.mqtt.host == "broker"
    assert settings.mqtt.car_ids == [1, 2]
    assert settings.database.name == "teslamate"


def test_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path) == Settings()
