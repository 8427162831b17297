"""Async SQLAlchemy engine wiring for the SQLite session database."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    import sqlite3
    from pathlib import Path

# Applied on every new pooled connection.
SESSION_DB_PRAGMAS: tuple[tuple[str, str], ...] = (
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("busy_timeout", "5000"),
)

SessionFactory = async_sessionmaker[AsyncSession]


@dataclass(slots=True)
class StorageRuntime:
    """Engine plus session factory shared by session store queries."""

    engine: AsyncEngine
    session_factory: SessionFactory


def build_sqlite_url(db_path: Path) -> str:
    """Build the aiosqlite URL used on the request path."""
    return f"sqlite+aiosqlite:///{db_path.expanduser().as_posix()}"


def build_sync_sqlite_url(db_path: Path) -> str:
    """Build the blocking SQLite URL used by schema migrations."""
    return f"sqlite:///{db_path.expanduser().as_posix()}"


def create_storage_runtime(db_path: Path) -> StorageRuntime:
    """Create the engine and session factory for one SQLite file."""
    engine = create_async_engine(build_sqlite_url(db_path), pool_pre_ping=True)
    event.listen(engine.sync_engine, "connect", apply_session_db_pragmas)
    return StorageRuntime(
        engine=engine,
        session_factory=async_sessionmaker(engine, expire_on_commit=False),
    )


async def dispose_storage_runtime(runtime: StorageRuntime) -> None:
    """Close pooled connections on app shutdown and fixture teardown."""
    await runtime.engine.dispose()


def apply_session_db_pragmas(dbapi_connection: object, _record: object) -> None:
    """Connect-event hook setting journal, sync and lock-wait PRAGMAs."""
    # aiosqlite's adapter mirrors the sqlite3 cursor API.
    cursor = cast("sqlite3.Connection", dbapi_connection).cursor()
    try:
        for name, value in SESSION_DB_PRAGMAS:
            _ = cursor.execute(f"PRAGMA {name}={value};")
    finally:
        cursor.close()
