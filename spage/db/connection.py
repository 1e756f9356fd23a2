"""Database connection management: SQLite (default) or PostgreSQL."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from spage.config import DEFAULT_ADMIN_PASSWORD, AppConfig
from spage.constants import Role
from spage.db.drivers import (
    DBConfig,
    configure_orm_logging,
    engine_options,
    load_db_config,
    open_engine,
)
from spage.db.errors import AdminSeedError, MigrationError, PasswordHashError, StoreError
from spage.db.models import User, migrate
from spage.db.users import UserRepository
from spage.password import hash_password

logger = logging.getLogger(__name__)


class Database:
    """An open engine plus a session factory bound to it."""

    def __init__(self, engine: Engine, config: DBConfig):
        self.engine = engine
        self.config = config
        self._session_factory = sessionmaker(engine, expire_on_commit=False)

    @property
    def driver(self) -> str:
        return self.config.driver

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get an ORM session (context manager). Commits on success."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


# Module-level singleton
_db: Database | None = None


def get_db() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


def close_db() -> None:
    """Dispose the global database instance, if any."""
    global _db
    if _db is not None:
        _db.dispose()
        _db = None


def seed_admin(db: Database, config: AppConfig) -> User:
    """Create or refresh the system administrator from config."""
    if config.admin_password == DEFAULT_ADMIN_PASSWORD and config.environment != "development":
        logger.warning("System admin %r is using the default password", config.admin_username)

    try:
        hashed = hash_password(config.admin_password, config.jwt_secret)
    except ValueError as e:
        logger.error("Failed to hash password: %s", e)
        raise PasswordHashError(str(e)) from e

    user = User(name=config.admin_username, password=hashed, role=Role.ADMIN.value)
    try:
        return UserRepository(db).update_system_admin(user)
    except SQLAlchemyError as e:
        logger.error("Failed to update admin user: %s", e)
        raise AdminSeedError(str(e)) from e


def init_db(config: AppConfig | None = None) -> Database:
    """Open the configured database, migrate it and seed the admin account.

    The opened ``Database`` is stored as the global instance as soon as the
    driver connects, and returned for callers that pass it around explicitly.
    Any failure raises a ``StoreError``; later steps are skipped. A handle
    left by an earlier call is disposed first.
    """
    global _db
    close_db()
    if config is None:
        config = AppConfig.from_yaml()

    db_config = load_db_config(config)
    configure_orm_logging()
    try:
        engine = open_engine(db_config, engine_options())
    except StoreError as e:
        logger.error("Failed to open database: %s", e)
        raise
    _db = Database(engine, db_config)

    try:
        migrate(engine)
    except SQLAlchemyError as e:
        logger.error("Failed to migrate models: %s", e)
        raise MigrationError(str(e)) from e

    seed_admin(_db, config)
    logger.info("Database initialized (%s)", db_config.driver)
    return _db
