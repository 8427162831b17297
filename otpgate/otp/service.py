"""Credential issuance and verification over a session store and gateway."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .phone import mask_phone, normalize_phone
from .session_store import Identity, SessionNotFoundError, now_epoch

if TYPE_CHECKING:
    from .gateway import GatewayRequest, GatewayResult
    from .session_store import SessionStore

logger = logging.getLogger(__name__)


class CredentialServiceError(RuntimeError):
    """Base error for credential issuance and verification."""


class InvalidInputError(CredentialServiceError):
    """Raised when issuance input is missing required values."""

    @classmethod
    def missing_fields(cls, fields: tuple[str, ...]) -> InvalidInputError:
        """Build deterministic error naming every missing field."""
        return cls(f"Missing required fields: {', '.join(fields)}.")

    @classmethod
    def phone_without_digits(cls) -> InvalidInputError:
        """Build deterministic error for phone values without any digit."""
        return cls("Phone number must contain at least one digit.")

    @classmethod
    def unencodable_fields(cls, fields: tuple[str, ...]) -> InvalidInputError:
        """Build deterministic error for values that are not valid UTF-8 text."""
        message = (
            "Fields contain characters that cannot be encoded: "
            f"{', '.join(fields)}."
        )
        return cls(message)


class NoPendingCredentialError(CredentialServiceError):
    """Raised when verification runs without an outstanding credential."""

    @classmethod
    def for_session(cls) -> NoPendingCredentialError:
        """Build deterministic error for sessions with nothing to verify."""
        return cls("No pending credential for this session. Request a new code.")


class InvalidCredentialError(CredentialServiceError):
    """Raised when the presented credential does not match."""

    @classmethod
    def mismatch(cls) -> InvalidCredentialError:
        """Build deterministic mismatch error."""
        return cls("Invalid code. Please try again.")


class CredentialExpiredError(CredentialServiceError):
    """Raised when a configured validity window has elapsed."""

    @classmethod
    def after(cls, ttl_seconds: int) -> CredentialExpiredError:
        """Build deterministic expiry error."""
        return cls(f"Code expired after {ttl_seconds} seconds. Request a new code.")


class GatewayDispatcherLike(Protocol):
    """Dispatcher surface the service needs."""

    def build_request(self, *, recipient: str, credential: str) -> GatewayRequest:
        """Build a gateway request for a normalized recipient."""
        ...

    async def dispatch(
        self,
        request: GatewayRequest,
        *,
        timeout: float | None = None,
    ) -> GatewayResult:
        """Send one request and classify the outcome."""
        ...


@dataclass(frozen=True, slots=True)
class IssueResult:
    """Issuance outcome: the credential is recorded, delivery may have failed."""

    session_id: str
    identity: Identity
    normalized_phone: str
    dispatch: GatewayResult
    recorded: bool = True

    @property
    def dispatched(self) -> bool:
        """Return True when the gateway accepted the request."""
        return self.dispatch.accepted


@dataclass(frozen=True, slots=True)
class VerifyResult:
    """Successful verification with the identity bound at issuance."""

    session_id: str
    identity: Identity


class CredentialService:
    """Issue caller-supplied credentials and verify them once per session."""

    _store: SessionStore
    _dispatcher: GatewayDispatcherLike
    _credential_ttl_seconds: int | None

    def __init__(
        self,
        *,
        store: SessionStore,
        dispatcher: GatewayDispatcherLike,
        credential_ttl_seconds: int | None = None,
    ) -> None:
        """Create service with explicit store and dispatcher dependencies."""
        self._store = store
        self._dispatcher = dispatcher
        self._credential_ttl_seconds = credential_ttl_seconds

    async def issue(
        self,
        *,
        session_id: str,
        identity: Identity,
        credential: str,
    ) -> IssueResult:
        """Record the credential for the session, then attempt delivery once.

        The store write happens before dispatch and is never rolled back, so a
        failed or timed-out delivery still leaves a verifiable credential.
        """
        name = identity.name.strip()
        phone = identity.phone.strip()
        missing = tuple(
            field
            for field, value in (("name", name), ("phone", phone), ("otp", credential))
            if not value
        )
        if missing:
            raise InvalidInputError.missing_fields(missing)

        unencodable = tuple(
            field
            for field, value in (("name", name), ("phone", phone), ("otp", credential))
            if not _is_utf8_encodable(value)
        )
        if unencodable:
            raise InvalidInputError.unencodable_fields(unencodable)

        normalized_phone = normalize_phone(phone)
        if not normalized_phone:
            raise InvalidInputError.phone_without_digits()

        stored_identity = Identity(name=name, phone=phone)
        _ = await self._store.put(
            session_id=session_id,
            identity=stored_identity,
            credential=credential,
        )
        logger.info(
            "Recorded pending credential",
            extra={"phone": mask_phone(normalized_phone)},
        )

        request = self._dispatcher.build_request(
            recipient=normalized_phone,
            credential=credential,
        )
        result = await self._dispatcher.dispatch(request)
        return IssueResult(
            session_id=session_id,
            identity=stored_identity,
            normalized_phone=normalized_phone,
            dispatch=result,
        )

    async def verify(self, *, session_id: str, presented: str) -> VerifyResult:
        """Compare the presented credential and consume it on match."""
        try:
            record = await self._store.get(session_id=session_id)
        except SessionNotFoundError as exc:
            raise NoPendingCredentialError.for_session() from exc

        pending = record.pending_credential
        if pending is None:
            raise NoPendingCredentialError.for_session()

        masked = mask_phone(normalize_phone(record.identity.phone))
        if self._is_expired(record.issued_at):
            _ = await self._store.consume_credential(
                session_id=session_id,
                credential=pending,
            )
            logger.info("Pending credential expired", extra={"phone": masked})
            raise CredentialExpiredError.after(self._credential_ttl_seconds or 0)

        if not secrets.compare_digest(
            presented.encode("utf-8", "surrogatepass"),
            pending.encode("utf-8", "surrogatepass"),
        ):
            logger.info("Credential verification failed", extra={"phone": masked})
            raise InvalidCredentialError.mismatch()

        consumed = await self._store.consume_credential(
            session_id=session_id,
            credential=pending,
        )
        if not consumed:
            # A concurrent verification or re-issuance won the race.
            raise NoPendingCredentialError.for_session()

        logger.info("Credential verification succeeded", extra={"phone": masked})
        return VerifyResult(session_id=session_id, identity=record.identity)

    def _is_expired(self, issued_at: int | None) -> bool:
        """Return True when an expiry window is configured and has elapsed."""
        if self._credential_ttl_seconds is None or issued_at is None:
            return False
        return issued_at + self._credential_ttl_seconds <= now_epoch()


def _is_utf8_encodable(value: str) -> bool:
    """Return False for strings carrying lone surrogates."""
    try:
        _ = value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True
