"""Alembic migration runner used by application startup lifecycle hooks."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util.exc import CommandError
from sqlalchemy.exc import SQLAlchemyError

from .db import build_sync_sqlite_url

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_SCRIPT_LOCATION = PROJECT_ROOT / "alembic"


class MigrationStartupError(RuntimeError):
    """Raised when startup migrations fail before API availability."""

    @classmethod
    def for_db_path_prepare_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for DB path preparation failures before migration run."""
        message = (
            "Failed to prepare database path for startup migrations "
            f"(db={db_path.as_posix()}): {details}"
        )
        return cls(message)

    @classmethod
    def for_upgrade_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for failed migration upgrade at process startup."""
        message = (
            "Failed to apply startup migrations to Alembic head "
            f"(db={db_path.as_posix()}): {details}"
        )
        return cls(message)


def build_alembic_config(db_path: Path) -> Config:
    """Build an Alembic config pointing at the bundled migration scripts."""
    config = Config()
    config.set_main_option("script_location", ALEMBIC_SCRIPT_LOCATION.as_posix())
    config.set_main_option("sqlalchemy.url", build_sync_sqlite_url(db_path))
    return config


def run_startup_migrations(db_path: Path) -> None:
    """Upgrade the session database schema to Alembic head."""
    db_path = db_path.expanduser()
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MigrationStartupError.for_db_path_prepare_failure(
            db_path,
            details=str(exc),
        ) from exc

    logger.info("Applying startup migrations to Alembic head (db=%s)", db_path)
    try:
        command.upgrade(build_alembic_config(db_path), "head")
    except (CommandError, SQLAlchemyError) as exc:
        raise MigrationStartupError.for_upgrade_failure(
            db_path,
            details=str(exc),
        ) from exc
    logger.info("Startup migrations complete (db=%s)", db_path)


class MigrationRunnerDependency:
    """Lifecycle dependency that gates app startup on migration completion."""

    _db_path: Path

    def __init__(self, *, db_path: Path) -> None:
        """Bind the runner to one database file."""
        self._db_path = db_path

    async def startup(self) -> None:
        """Run migrations before app accepts requests."""
        await asyncio.to_thread(run_startup_migrations, self._db_path)

    async def shutdown(self) -> None:
        """No-op shutdown hook for lifecycle protocol compatibility."""
        return
