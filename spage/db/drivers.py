"""Driver selection: load the database config and open an engine for it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from spage.config import AppConfig
from spage.db.errors import (
    ConnectionOpenError,
    DirectoryCreationError,
    IncompleteConfigError,
    UnsupportedDriverError,
)

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = "./data/data.db"

# sqlalchemy.engine logger level by ORM verbosity
_ORM_LOG_LEVELS = {
    "silent": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
ORM_LOG_LEVEL = "info"


class DatabaseDriver(str, Enum):
    SQLITE = "sqlite"
    POSTGRES = "postgres"


@dataclass(frozen=True)
class DBConfig:
    driver: str
    path: str
    host: str
    port: int
    user: str
    password: str
    dbname: str
    sslmode: str


def load_db_config(config: AppConfig) -> DBConfig:
    """Snapshot the ``database.*`` keys. Defaults live on ``DatabaseConfig``."""
    db = config.database
    return DBConfig(
        driver=db.driver,
        path=db.path or DEFAULT_SQLITE_PATH,
        host=db.host,
        port=db.port,
        user=db.user,
        password=db.password,
        dbname=db.dbname,
        sslmode=db.sslmode,
    )


def configure_orm_logging(log_level: str = ORM_LOG_LEVEL) -> None:
    """Route SQL logging through the root handlers at the ORM verbosity.

    The application's own level still applies: with the root logger at
    WARNING, SQL statements stay silent even at ORM verbosity "info".
    """
    level = _ORM_LOG_LEVELS.get(log_level.lower(), logging.WARNING)
    root_level = logging.getLogger().getEffectiveLevel()
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, root_level))


def engine_options() -> dict[str, Any]:
    """Engine keyword arguments shared by every driver."""
    return {
        "echo": False,
        "pool_pre_ping": True,
    }


def build_postgres_dsn(config: DBConfig) -> str:
    return (
        f"host={config.host} port={config.port} user={config.user} "
        f"password={config.password} dbname={config.dbname} sslmode={config.sslmode}"
    )


def _verify(engine: Engine, driver: DatabaseDriver) -> Engine:
    """Make one round trip so connection failures surface at startup."""
    try:
        with engine.connect():
            pass
    except SQLAlchemyError as e:
        engine.dispose()
        raise ConnectionOpenError(driver.value, str(e)) from e
    return engine


def open_postgres(config: DBConfig, options: dict[str, Any]) -> Engine:
    """Open a PostgreSQL engine from the host/port/user/... field group.

    Port and sslmode are passed through as configured.
    """
    required = {
        "host": config.host,
        "user": config.user,
        "password": config.password,
        "dbname": config.dbname,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise IncompleteConfigError(DatabaseDriver.POSTGRES.value, missing)

    dsn = build_postgres_dsn(config)
    logger.info(
        "Opening PostgreSQL database %s on %s:%d", config.dbname, config.host, config.port
    )
    try:
        engine = create_engine("postgresql+psycopg2://", connect_args={"dsn": dsn}, **options)
    except (SQLAlchemyError, ImportError) as e:
        raise ConnectionOpenError(DatabaseDriver.POSTGRES.value, str(e)) from e
    return _verify(engine, DatabaseDriver.POSTGRES)


def _set_sqlite_pragmas(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def open_sqlite(config: DBConfig, options: dict[str, Any]) -> Engine:
    """Open a file-backed SQLite engine, creating the parent directory first."""
    db_path = Path(config.path or DEFAULT_SQLITE_PATH)
    try:
        db_path.parent.mkdir(mode=0o777, parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(
            DatabaseDriver.SQLITE.value, str(db_path.parent), str(e)
        ) from e

    logger.info("Opening SQLite database at %s", db_path)
    try:
        engine = create_engine(f"sqlite:///{db_path}", **options)
    except SQLAlchemyError as e:
        raise ConnectionOpenError(DatabaseDriver.SQLITE.value, str(e)) from e
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return _verify(engine, DatabaseDriver.SQLITE)


_OPENERS: dict[DatabaseDriver, Callable[[DBConfig, dict[str, Any]], Engine]] = {
    DatabaseDriver.SQLITE: open_sqlite,
    DatabaseDriver.POSTGRES: open_postgres,
}


def open_engine(config: DBConfig, options: dict[str, Any]) -> Engine:
    """Dispatch on ``config.driver`` and open the matching engine."""
    try:
        driver = DatabaseDriver(config.driver)
    except ValueError:
        raise UnsupportedDriverError(
            config.driver, [d.value for d in DatabaseDriver]
        ) from None
    return _OPENERS[driver](config, options)
