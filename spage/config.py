"""Application configuration: env vars, YAML files, defaults."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


def _repo_root() -> Path:
    """Find the repository root (directory containing pyproject.toml)."""
    current = Path(__file__).resolve().parent.parent
    if (current / "pyproject.toml").exists():
        return current
    return Path.cwd()


REPO_ROOT = _repo_root()

DEFAULT_ADMIN_PASSWORD = "admin"


class DatabaseConfig(BaseSettings):
    """The ``database.*`` keys. Validation happens when the driver is opened."""

    driver: str = "sqlite"
    path: str = "./data/data.db"
    host: str = "postgres"
    port: int = 5432
    user: str = "spage"
    password: str = "spage"
    dbname: str = "spage"
    sslmode: str = "disable"

    model_config = {"env_prefix": "SPAGE_DATABASE_"}


class ServerConfig(BaseSettings):
    log_level: str = "info"

    model_config = {"env_prefix": "SPAGE_SERVER_"}


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    # System administrator seeded on startup
    admin_username: str = "admin"
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    jwt_secret: str = "spage"

    # Environment & Sentry
    environment: str = "development"
    sentry_dsn: str = ""

    model_config = {"env_prefix": "SPAGE_"}

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> AppConfig:
        """Load config from YAML file, with env var overrides.

        Precedence is defaults < YAML < ``SPAGE_*`` env vars, for top-level
        keys and for keys inside the ``database``/``server`` sections.
        """
        if path is None:
            path = REPO_ROOT / "config" / "app.yml"

        values: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                values = yaml.safe_load(f) or {}

        for name, section_cls in _SECTIONS.items():
            section_values = values.get(name) or {}
            values[name] = section_cls(**_without_env_overrides(section_cls, section_values))

        return cls(**_without_env_overrides(cls, values))


_SECTIONS: dict[str, type[BaseSettings]] = {
    "database": DatabaseConfig,
    "server": ServerConfig,
}


def _without_env_overrides(
    settings_cls: type[BaseSettings], values: dict[str, Any]
) -> dict[str, Any]:
    """Drop keys that an env var also sets, so BaseSettings reads them from env."""
    prefix = settings_cls.model_config.get("env_prefix", "")
    env_names = {name.upper() for name in os.environ}
    return {
        key: value
        for key, value in values.items()
        if key in _SECTIONS or f"{prefix}{key}".upper() not in env_names
    }
