"""Outbound SMS gateway dispatch with a bounded wait and no retry."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import httpx

from .phone import mask_phone

if TYPE_CHECKING:
    from otpgate.config.settings import GatewaySettings

logger = logging.getLogger(__name__)

GatewayFailure = Literal["timeout", "transport_error"]

GATEWAY_FAILURE_TIMEOUT: GatewayFailure = "timeout"
GATEWAY_FAILURE_TRANSPORT: GatewayFailure = "transport_error"

_API_REQUEST_KIND = "Text"
_RESPONSE_FORMAT = "JSON"


class GatewayDispatcherError(RuntimeError):
    """Raised when the dispatcher is used outside its lifecycle."""

    @classmethod
    def not_started(cls) -> GatewayDispatcherError:
        """Build deterministic error for dispatch before startup."""
        return cls("Gateway dispatcher is not started: call startup() first.")


@dataclass(frozen=True, slots=True)
class GatewayMetadata:
    """Static routing details attached to every gateway request."""

    sender: str
    route: str
    template_id: str


@dataclass(frozen=True, slots=True)
class GatewayRequest:
    """One delivery attempt: recipient, rendered message and routing metadata."""

    recipient: str
    message: str
    metadata: GatewayMetadata


@dataclass(frozen=True, slots=True)
class GatewayResult:
    """Outcome of a single dispatch attempt."""

    payload: object | None = None
    failure: GatewayFailure | None = None
    detail: str | None = None
    raw_body: str | None = None
    status_code: int | None = None

    @property
    def accepted(self) -> bool:
        """Return True when the HTTP exchange completed successfully."""
        return self.failure is None

    @classmethod
    def success(cls, *, payload: object, status_code: int) -> GatewayResult:
        """Build result for a completed exchange."""
        return cls(payload=payload, status_code=status_code)

    @classmethod
    def timed_out(cls, *, timeout_seconds: float) -> GatewayResult:
        """Build result for an exchange that exceeded its deadline."""
        return cls(
            failure=GATEWAY_FAILURE_TIMEOUT,
            detail=f"Gateway did not respond within {timeout_seconds:g} seconds.",
        )

    @classmethod
    def transport_error(
        cls,
        *,
        detail: str,
        raw_body: str | None = None,
        status_code: int | None = None,
    ) -> GatewayResult:
        """Build result for transport failures and non-success responses."""
        return cls(
            failure=GATEWAY_FAILURE_TRANSPORT,
            detail=detail,
            raw_body=raw_body,
            status_code=status_code,
        )


def build_gateway_request(
    *,
    settings: GatewaySettings,
    recipient: str,
    credential: str,
) -> GatewayRequest:
    """Render the delivery message for a normalized recipient."""
    message = settings.message_template.format(
        credential=credential,
        validity_minutes=settings.validity_minutes,
        sender=settings.sender,
    )
    return GatewayRequest(
        recipient=recipient,
        message=message,
        metadata=GatewayMetadata(
            sender=settings.sender,
            route=settings.route,
            template_id=settings.template_id,
        ),
    )


class GatewayDispatcher:
    """Send gateway requests over a shared async HTTP client."""

    _settings: GatewaySettings
    _transport: httpx.AsyncBaseTransport | None
    _client: httpx.AsyncClient | None

    def __init__(
        self,
        *,
        settings: GatewaySettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create dispatcher bound to one gateway configuration."""
        self._settings = settings
        self._transport = transport
        self._client = None

    @property
    def settings(self) -> GatewaySettings:
        """Expose the gateway configuration this dispatcher sends with."""
        return self._settings

    async def startup(self) -> None:
        """Open the shared HTTP client."""
        if self._client is not None:
            return
        if not self._settings.has_credentials:
            logger.warning(
                "SMS gateway credentials are not configured; dispatch will be "
                "rejected by the gateway",
            )
        self._client = httpx.AsyncClient(transport=self._transport)

    async def shutdown(self) -> None:
        """Close the shared HTTP client."""
        client = self._client
        self._client = None
        if client is not None:
            await client.aclose()

    def build_request(self, *, recipient: str, credential: str) -> GatewayRequest:
        """Build a gateway request from this dispatcher's configuration."""
        return build_gateway_request(
            settings=self._settings,
            recipient=recipient,
            credential=credential,
        )

    async def dispatch(
        self,
        request: GatewayRequest,
        *,
        timeout: float | None = None,
    ) -> GatewayResult:
        """Send one request and classify the outcome; never raises for I/O faults."""
        client = self._client
        if client is None:
            raise GatewayDispatcherError.not_started()

        deadline = self._settings.timeout_seconds if timeout is None else timeout
        masked_recipient = mask_phone(request.recipient)
        logger.info(
            "Dispatching credential to SMS gateway",
            extra={"recipient": masked_recipient, "route": request.metadata.route},
        )
        try:
            async with asyncio.timeout(deadline):
                response = await client.get(
                    self._settings.endpoint,
                    params=self._query_params(request),
                    timeout=deadline,
                )
        except (TimeoutError, httpx.TimeoutException):
            logger.warning(
                "SMS gateway timed out",
                extra={"recipient": masked_recipient, "timeout_seconds": deadline},
            )
            return GatewayResult.timed_out(timeout_seconds=deadline)
        except httpx.HTTPError as exc:
            logger.warning(
                "SMS gateway transport failure",
                extra={"recipient": masked_recipient, "error_type": type(exc).__name__},
            )
            return GatewayResult.transport_error(
                detail=f"Gateway request failed: {type(exc).__name__}.",
            )
        except (httpx.InvalidURL, UnicodeEncodeError) as exc:
            logger.warning(
                "SMS gateway request could not be built",
                extra={"recipient": masked_recipient, "error_type": type(exc).__name__},
            )
            return GatewayResult.transport_error(
                detail=f"Gateway request could not be built: {type(exc).__name__}.",
            )

        if not response.is_success:
            logger.warning(
                "SMS gateway returned non-success status",
                extra={
                    "recipient": masked_recipient,
                    "status_code": response.status_code,
                },
            )
            return GatewayResult.transport_error(
                detail=f"Gateway responded with HTTP {response.status_code}.",
                raw_body=response.text,
                status_code=response.status_code,
            )

        logger.info(
            "SMS gateway accepted request",
            extra={"recipient": masked_recipient, "status_code": response.status_code},
        )
        return GatewayResult.success(
            payload=_decode_payload(response),
            status_code=response.status_code,
        )

    def _query_params(self, request: GatewayRequest) -> dict[str, str]:
        """Build the gateway's query-string wire format."""
        return {
            "username": self._settings.username,
            "apikey": self._settings.api_key,
            "apirequest": _API_REQUEST_KIND,
            "sender": request.metadata.sender,
            "mobile": request.recipient,
            "message": request.message,
            "route": request.metadata.route,
            "TemplateID": request.metadata.template_id,
            "format": _RESPONSE_FORMAT,
        }


def _decode_payload(response: httpx.Response) -> object:
    """Return parsed JSON when the body parses, raw text otherwise."""
    try:
        return response.json()
    except ValueError:
        return response.text
