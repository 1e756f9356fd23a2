"""Shared fixtures: every test gets its own SQLite file under tmp_path."""

from __future__ import annotations

import pytest

from spage.config import AppConfig, DatabaseConfig
from spage.db.connection import close_db, init_db


@pytest.fixture(autouse=True)
def reset_global_db():
    """Never leak the process-wide database between tests."""
    close_db()
    yield
    close_db()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    config = AppConfig(
        admin_username="admin",
        admin_password="s3cret",
        jwt_secret="test-secret",
    )
    config.database = DatabaseConfig(driver="sqlite", path=str(tmp_path / "data" / "test.db"))
    return config


@pytest.fixture
def db(app_config):
    """An initialized (migrated and seeded) database."""
    return init_db(app_config)
