from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel

APP_VERSION = "0.4.0"


class AppConfig(BaseModel):
    name: str = "TeslaMate CyberUI"
    version: str = APP_VERSION
    log_level: str = "INFO"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["*"]
    # Empty key disables authentication
    api_key: str = ""


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    name: str = "teslamate"
    user: str = "teslamate"
    password: str = "teslamate"
    sslmode: str = "disable"
    pool_min: int = 0
    pool_max: int = 25
    connect_timeout: float = 5.0


class MqttConfig(BaseModel):
    enabled: bool = True
    host: str = "localhost"
    port: int = 1883
    username: str = ""
    password: str = ""
    client_id: str = "teslamate-cyberui"
    namespace: str = "teslamate/cars"
    keepalive: int = 60
    connect_timeout: float = 10.0
    reconnect_interval: float = 1.0
    max_reconnect_interval: float = 10.0
    disconnect_timeout: float = 0.25
    tls: bool = False
    tls_insecure: bool = True
    # Used only when the car list cannot be read from the database
    car_ids: list[int] = []


class Settings(BaseModel):
    app: AppConfig = AppConfig()
    server: ServerConfig = ServerConfig()
    database: DatabaseConfig = DatabaseConfig()
    mqtt: MqttConfig = MqttConfig()


def _find_config_path() -> Path:
    env = os.environ.get("CYBERUI_CONFIG_PATH")
    if env:
        return Path(env)
    return Path(__file__).resolve().parent.parent.parent / "config.yaml"


def load_settings(path: Path) -> Settings:
    if not path.exists():
        return Settings()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Settings(**data)


@lru_cache
def get_settings() -> Settings:
    return load_settings(_find_config_path())
