"""One-time credential issuance, delivery and verification."""

from .gateway import (
    GATEWAY_FAILURE_TIMEOUT,
    GATEWAY_FAILURE_TRANSPORT,
    GatewayDispatcher,
    GatewayDispatcherError,
    GatewayFailure,
    GatewayMetadata,
    GatewayRequest,
    GatewayResult,
    build_gateway_request,
)
from .phone import mask_phone, normalize_phone
from .service import (
    CredentialExpiredError,
    CredentialService,
    CredentialServiceError,
    InvalidCredentialError,
    InvalidInputError,
    IssueResult,
    NoPendingCredentialError,
    VerifyResult,
)
from .session_store import (
    Identity,
    InMemorySessionStore,
    SessionNotFoundError,
    SessionRecord,
    SessionStore,
    SessionStoreError,
)

__all__ = [
    "GATEWAY_FAILURE_TIMEOUT",
    "GATEWAY_FAILURE_TRANSPORT",
    "CredentialExpiredError",
    "CredentialService",
    "CredentialServiceError",
    "GatewayDispatcher",
    "GatewayDispatcherError",
    "GatewayFailure",
    "GatewayMetadata",
    "GatewayRequest",
    "GatewayResult",
    "Identity",
    "InMemorySessionStore",
    "InvalidCredentialError",
    "InvalidInputError",
    "IssueResult",
    "NoPendingCredentialError",
    "SessionNotFoundError",
    "SessionRecord",
    "SessionStore",
    "SessionStoreError",
    "VerifyResult",
    "build_gateway_request",
    "mask_phone",
    "normalize_phone",
]
