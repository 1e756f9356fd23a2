"""Database bootstrap errors.

Every failure raised by ``init_db`` is a ``StoreError`` carrying the operation
that failed. Driver-level errors are additionally prefixed with the driver
name, e.g. ``"postgres initialization failed: ..."``. The underlying exception,
when there is one, is chained as ``__cause__``.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for database bootstrap failures."""

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.message = message
        self.operation = operation


class DriverError(StoreError):
    """Failure while opening a specific driver."""

    def __init__(self, driver: str, detail: str):
        super().__init__(f"{driver} initialization failed: {detail}", "open")
        self.driver = driver


class UnsupportedDriverError(StoreError):
    def __init__(self, driver: str, supported: list[str]):
        super().__init__(
            f"unsupported database driver {driver!r}, only {' and '.join(supported)} are supported",
            "open",
        )
        self.driver = driver
        self.supported = supported


class IncompleteConfigError(DriverError):
    def __init__(self, driver: str, missing: list[str]):
        super().__init__(driver, f"configuration is incomplete (missing: {', '.join(missing)})")
        self.missing = missing


class DirectoryCreationError(DriverError):
    def __init__(self, driver: str, path: str, reason: str):
        super().__init__(driver, f"failed to create directory {path!r} for database: {reason}")
        self.path = path


class ConnectionOpenError(DriverError):
    def __init__(self, driver: str, reason: str):
        super().__init__(driver, f"could not open connection: {reason}")


class MigrationError(StoreError):
    def __init__(self, reason: str):
        super().__init__(f"failed to migrate models: {reason}", "migrate")


class PasswordHashError(StoreError):
    def __init__(self, reason: str):
        super().__init__(f"failed to hash admin password: {reason}", "hash_password")


class AdminSeedError(StoreError):
    def __init__(self, reason: str):
        super().__init__(f"failed to update admin user: {reason}", "seed_admin")
