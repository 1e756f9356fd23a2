"""Tests for init_db: open, migrate, seed."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from spage.config import DEFAULT_ADMIN_PASSWORD, DatabaseConfig
from spage.constants import Role
from spage.db.connection import Database, close_db, get_db, init_db
from spage.db.errors import (
    AdminSeedError,
    DirectoryCreationError,
    MigrationError,
    PasswordHashError,
    StoreError,
    UnsupportedDriverError,
)
from spage.db.models import User
from spage.db.users import UserRepository
from spage.password import verify_password


class TestInitSuccess:
    def test_sets_global_handle(self, app_config):
        db = init_db(app_config)
        assert get_db() is db
        assert db.driver == "sqlite"

    def test_creates_tables(self, db):
        assert "users" in inspect(db.engine).get_table_names()

    def test_seeds_admin(self, db, app_config):
        admin = UserRepository(db).get_first_admin()
        assert admin is not None
        assert admin.name == "admin"
        assert admin.role == Role.ADMIN.value
        assert verify_password("s3cret", admin.password, app_config.jwt_secret)

    def test_restart_does_not_duplicate_admin(self, app_config):
        first = init_db(app_config)
        admin_id = UserRepository(first).get_first_admin().id
        close_db()

        app_config.admin_password = "rotated"
        second = init_db(app_config)
        repo = UserRepository(second)

        assert repo.count(Role.ADMIN) == 1
        admin = repo.get_first_admin()
        assert admin.id == admin_id
        assert verify_password("rotated", admin.password, app_config.jwt_secret)

    def test_get_db_before_init(self):
        with pytest.raises(RuntimeError):
            get_db()


class TestInitFailures:
    def test_unsupported_driver_leaves_global_unset(self, app_config):
        app_config.database = DatabaseConfig(driver="mysql")
        with pytest.raises(UnsupportedDriverError):
            init_db(app_config)
        with pytest.raises(RuntimeError):
            get_db()

    def test_directory_failure_leaves_global_unset(self, app_config, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        app_config.database = DatabaseConfig(path=str(blocker / "data.db"))

        with patch("spage.db.connection.migrate") as mock_migrate:
            with pytest.raises(DirectoryCreationError):
                init_db(app_config)

        mock_migrate.assert_not_called()
        with pytest.raises(RuntimeError):
            get_db()

    def test_migration_failure_skips_seeding(self, app_config):
        error = OperationalError("CREATE TABLE users", {}, Exception("disk I/O error"))
        with (
            patch("spage.db.connection.migrate", side_effect=error),
            patch("spage.db.connection.hash_password") as mock_hash,
        ):
            with pytest.raises(MigrationError) as exc_info:
                init_db(app_config)

        mock_hash.assert_not_called()
        assert exc_info.value.__cause__ is error
        assert exc_info.value.operation == "migrate"
        # the opened connection stays registered
        assert get_db().driver == "sqlite"

    def test_hash_failure(self, app_config):
        app_config.admin_password = ""
        with pytest.raises(PasswordHashError):
            init_db(app_config)
        assert UserRepository(get_db()).count() == 0

    def test_seed_failure(self, app_config):
        with patch.object(
            UserRepository, "update_system_admin", side_effect=SQLAlchemyError("locked")
        ):
            with pytest.raises(AdminSeedError) as exc_info:
                init_db(app_config)
        assert "locked" in str(exc_info.value)

    def test_all_failures_share_base(self):
        assert issubclass(MigrationError, StoreError)
        assert issubclass(AdminSeedError, StoreError)
        assert issubclass(UnsupportedDriverError, StoreError)


class TestSystemAdminUpsert:
    def test_repeated_upsert_keeps_single_admin(self, db):
        repo = UserRepository(db)
        original = repo.get_first_admin()

        for _ in range(3):
            repo.update_system_admin(User(name="root", password="hash"))

        assert repo.count(Role.ADMIN) == 1
        admin = repo.get_first_admin()
        assert admin.id == original.id
        assert admin.name == "root"

    def test_creates_admin_when_missing(self, app_config):
        app_config.admin_password = "x"
        db = init_db(app_config)
        repo = UserRepository(db)
        with db.session() as session:
            session.query(User).delete()

        created = repo.update_system_admin(User(name="fresh", password="h"))
        assert created.id is not None
        assert created.role == Role.ADMIN.value
        assert repo.count() == 1


class TestReinit:
    def test_disposes_previous_handle(self, app_config):
        first = init_db(app_config)
        with patch.object(Database, "dispose", autospec=True) as mock_dispose:
            second = init_db(app_config)

        mock_dispose.assert_called_once_with(first)
        assert get_db() is second

    def test_failed_reinit_clears_stale_handle(self, app_config):
        init_db(app_config)
        app_config.database = DatabaseConfig(driver="mysql")

        with pytest.raises(UnsupportedDriverError):
            init_db(app_config)
        with pytest.raises(RuntimeError):
            get_db()


class TestDefaultAdminPassword:
    def _warnings(self, caplog) -> list[str]:
        return [
            r.getMessage()
            for r in caplog.records
            if r.name == "spage.db.connection" and r.levelno == logging.WARNING
        ]

    def test_warns_outside_development(self, app_config, caplog):
        app_config.environment = "production"
        app_config.admin_password = DEFAULT_ADMIN_PASSWORD
        with caplog.at_level(logging.WARNING, logger="spage.db.connection"):
            init_db(app_config)

        assert any("default password" in m for m in self._warnings(caplog))

    def test_silent_in_development(self, app_config, caplog):
        app_config.environment = "development"
        app_config.admin_password = DEFAULT_ADMIN_PASSWORD
        with caplog.at_level(logging.WARNING, logger="spage.db.connection"):
            init_db(app_config)

        assert self._warnings(caplog) == []

    def test_silent_with_custom_password(self, app_config, caplog):
        app_config.environment = "production"
        with caplog.at_level(logging.WARNING, logger="spage.db.connection"):
            init_db(app_config)

        assert self._warnings(caplog) == []


class TestSqlLogging:
    def _create_table_records(self, caplog) -> list[logging.LogRecord]:
        return [
            r
            for r in caplog.records
            if r.name.startswith("sqlalchemy.engine") and "CREATE TABLE users" in r.getMessage()
        ]

    def test_each_statement_logged_once(self, app_config, caplog):
        caplog.set_level(logging.INFO)
        init_db(app_config)

        assert len(self._create_table_records(caplog)) == 1
        assert not logging.getLogger("sqlalchemy.engine.Engine").handlers

    def test_silent_when_app_logs_warnings(self, app_config, caplog):
        caplog.set_level(logging.WARNING)
        init_db(app_config)

        assert self._create_table_records(caplog) == []
