"""SQLite-backed session store for pending credentials."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import text

from otpgate.otp.session_store import (
    Identity,
    SessionNotFoundError,
    SessionRecord,
    SessionStoreError,
    now_epoch,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .db import SessionFactory

_RETURNING_COLUMNS = "session_id, name, phone, pending_credential, issued_at"


class SqliteSessionStore:
    """Session store persisting one `otp_sessions` row per session id."""

    _session_factory: SessionFactory

    def __init__(self, *, session_factory: SessionFactory) -> None:
        """Bind the store to one session database."""
        self._session_factory = session_factory

    async def put(
        self,
        *,
        session_id: str,
        identity: Identity,
        credential: str,
    ) -> SessionRecord:
        """Upsert identity and pending credential for the session."""
        statement = text(
            f"""
            INSERT INTO otp_sessions (
                session_id,
                name,
                phone,
                pending_credential,
                issued_at
            )
            VALUES (:session_id, :name, :phone, :pending_credential, :issued_at)
            ON CONFLICT(session_id) DO UPDATE SET
                name = excluded.name,
                phone = excluded.phone,
                pending_credential = excluded.pending_credential,
                issued_at = excluded.issued_at,
                updated_at = CURRENT_TIMESTAMP
            RETURNING {_RETURNING_COLUMNS}
            """,  # noqa: S608
        )
        async with self._session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "session_id": session_id,
                    "name": identity.name,
                    "phone": identity.phone,
                    "pending_credential": credential,
                    "issued_at": now_epoch(),
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    async def get(self, *, session_id: str) -> SessionRecord:
        """Fetch session state by session id."""
        statement = text(
            f"""
            SELECT {_RETURNING_COLUMNS}
            FROM otp_sessions
            WHERE session_id = :session_id
            """,  # noqa: S608
        )
        async with self._session_factory() as session:
            result = await session.execute(statement, {"session_id": session_id})
            row = result.mappings().one_or_none()
        if row is None:
            raise SessionNotFoundError.for_session_id(session_id)
        return _decode_row(row)

    async def consume_credential(self, *, session_id: str, credential: str) -> bool:
        """Clear the pending credential only if it still holds `credential`."""
        statement = text(
            """
            UPDATE otp_sessions
            SET pending_credential = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE session_id = :session_id
              AND pending_credential = :credential
            RETURNING session_id
            """,
        )
        async with self._session_factory() as session:
            result = await session.execute(
                statement,
                {"session_id": session_id, "credential": credential},
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return row is not None


def _decode_row(row: object) -> SessionRecord:
    """Decode a row mapping into a SessionRecord."""
    row_map = cast("Mapping[str, object]", cast("object", row))
    return SessionRecord(
        session_id=_coerce_str(value=row_map.get("session_id"), field_name="session_id"),
        identity=Identity(
            name=_coerce_str(value=row_map.get("name"), field_name="name"),
            phone=_coerce_str(value=row_map.get("phone"), field_name="phone"),
        ),
        pending_credential=_coerce_optional_str(
            value=row_map.get("pending_credential"),
            field_name="pending_credential",
        ),
        issued_at=_coerce_optional_int(
            value=row_map.get("issued_at"),
            field_name="issued_at",
        ),
    )


def _coerce_str(*, value: object, field_name: str) -> str:
    if isinstance(value, str):
        return value
    raise SessionStoreError(f"OTP session state missing `{field_name}` value.")


def _coerce_optional_str(*, value: object, field_name: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    raise SessionStoreError(f"OTP session state invalid `{field_name}` value.")


def _coerce_optional_int(*, value: object, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    raise SessionStoreError(f"OTP session state invalid `{field_name}` value.")
