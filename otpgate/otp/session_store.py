"""Session store contract and the in-process implementation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


class SessionStoreError(RuntimeError):
    """Base error for session store operations."""


class SessionNotFoundError(SessionStoreError):
    """Raised when no state exists for a session id."""

    @classmethod
    def for_session_id(cls, session_id: str) -> SessionNotFoundError:
        """Build deterministic missing-session error."""
        return cls(f"OTP session state not found for session_id='{session_id}'.")


@dataclass(frozen=True, slots=True)
class Identity:
    """Claimed identity as supplied by the caller."""

    name: str
    phone: str


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """Identity and pending credential held for one session."""

    session_id: str
    identity: Identity
    pending_credential: str | None
    issued_at: int | None


@runtime_checkable
class SessionStore(Protocol):
    """Async store keyed by opaque session id."""

    async def put(
        self,
        *,
        session_id: str,
        identity: Identity,
        credential: str,
    ) -> SessionRecord:
        """Overwrite identity and pending credential, creating the session if absent."""
        ...

    async def get(self, *, session_id: str) -> SessionRecord:
        """Return session state or raise SessionNotFoundError."""
        ...

    async def consume_credential(self, *, session_id: str, credential: str) -> bool:
        """Clear the pending credential if it still equals `credential`."""
        ...


class InMemorySessionStore:
    """Process-local session store without expiry or capacity bound."""

    _records: dict[str, SessionRecord]
    _lock: asyncio.Lock

    def __init__(self) -> None:
        """Create an empty store."""
        self._records = {}
        self._lock = asyncio.Lock()

    async def put(
        self,
        *,
        session_id: str,
        identity: Identity,
        credential: str,
    ) -> SessionRecord:
        """Overwrite identity and pending credential for the session."""
        record = SessionRecord(
            session_id=session_id,
            identity=identity,
            pending_credential=credential,
            issued_at=now_epoch(),
        )
        async with self._lock:
            self._records[session_id] = record
        return record

    async def get(self, *, session_id: str) -> SessionRecord:
        """Return stored session state."""
        async with self._lock:
            record = self._records.get(session_id)
        if record is None:
            raise SessionNotFoundError.for_session_id(session_id)
        return record

    async def consume_credential(self, *, session_id: str, credential: str) -> bool:
        """Clear the pending credential when it matches the expected value."""
        async with self._lock:
            record = self._records.get(session_id)
            if record is None or record.pending_credential != credential:
                return False
            self._records[session_id] = replace(record, pending_credential=None)
        return True


def now_epoch() -> int:
    """Return the current UTC timestamp as integer seconds."""
    return int(datetime.now(tz=UTC).timestamp())
