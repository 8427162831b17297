"""Storage module for otpgate."""

from .db import (
    SESSION_DB_PRAGMAS,
    SessionFactory,
    StorageRuntime,
    apply_session_db_pragmas,
    build_sqlite_url,
    build_sync_sqlite_url,
    create_storage_runtime,
    dispose_storage_runtime,
)
from .migrations import (
    MigrationRunnerDependency,
    MigrationStartupError,
    run_startup_migrations,
)
from .otp_sessions_repo import SqliteSessionStore

__all__ = [
    "SESSION_DB_PRAGMAS",
    "MigrationRunnerDependency",
    "MigrationStartupError",
    "SessionFactory",
    "SqliteSessionStore",
    "StorageRuntime",
    "apply_session_db_pragmas",
    "build_sqlite_url",
    "build_sync_sqlite_url",
    "create_storage_runtime",
    "dispose_storage_runtime",
    "run_startup_migrations",
]
