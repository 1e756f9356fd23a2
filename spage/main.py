"""Startup entry point: configure logging, then open and seed the database."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import sentry_sdk

from spage.config import AppConfig
from spage.db.connection import init_db
from spage.db.errors import StoreError

logger = logging.getLogger(__name__)


def _init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK if a DSN is configured and not in development."""
    if not dsn or environment == "development":
        return
    sentry_sdk.init(
        dsn,
        environment=environment,
        traces_sample_rate=0,
        send_client_reports=False,
        auto_session_tracking=False,
    )


def bootstrap(config: AppConfig) -> int:
    """Run startup for ``config``. Returns a process exit code."""
    _init_sentry(config.sentry_dsn, config.environment)

    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        init_db(config)
    except StoreError as e:
        sentry_sdk.capture_exception(e)
        logger.error("Startup aborted: %s", e)
        return 1
    return 0


def cli_entry() -> None:
    """CLI entry point: initialize the database and exit."""
    parser = argparse.ArgumentParser(description="Initialize the spage database")
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to app.yml (default: config/app.yml)"
    )
    args = parser.parse_args()

    config = AppConfig.from_yaml(args.config)
    sys.exit(bootstrap(config))


if __name__ == "__main__":
    cli_entry()
