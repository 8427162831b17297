"""OTP issuance and verification endpoints bound to the session cookie."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated, cast

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from otpgate.api.errors import (
    ERROR_CREDENTIAL_EXPIRED,
    ERROR_GATEWAY_ERROR,
    ERROR_GATEWAY_TIMEOUT,
    ERROR_INVALID_CREDENTIAL,
    ERROR_NO_PENDING_CREDENTIAL,
    api_error,
    invalid_input_error,
)
from otpgate.api.session_cookie import resolve_session_id
from otpgate.otp import (
    GATEWAY_FAILURE_TIMEOUT,
    CredentialExpiredError,
    CredentialService,
    GatewayResult,
    Identity,
    InvalidCredentialError,
    InvalidInputError,
    NoPendingCredentialError,
)

router = APIRouter()

logger = logging.getLogger(__name__)

_OTP_SENT_MESSAGE = "OTP sent successfully"
_OTP_VERIFIED_MESSAGE = "OTP verified successfully"

SessionId = Annotated[str, Depends(resolve_session_id)]


class SendOtpRequest(BaseModel):
    """Payload for issuing a caller-supplied one-time code."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str | None = None
    phone: str | None = None
    otp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("otp", "credential"),
    )


class SendOtpResponse(BaseModel):
    """Issuance outcome; `credentialRecorded` stays true when delivery fails."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    timestamp: datetime
    credential_recorded: bool = Field(alias="credentialRecorded")
    error: str | None = None
    gateway_response: object | None = Field(default=None, alias="gatewayResponse")


class VerifyOtpRequest(BaseModel):
    """Payload for verifying the pending code of the current session."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    otp: str | None = Field(
        default=None,
        validation_alias=AliasChoices("otp", "credential"),
    )


class VerifiedUser(BaseModel):
    """Identity bound to the session at issuance."""

    name: str
    phone: str


class VerifyOtpResponse(BaseModel):
    """Successful verification payload."""

    success: bool
    message: str
    user: VerifiedUser
    timestamp: datetime


@router.post(
    "/api/send-otp",
    tags=["otp"],
    response_model=SendOtpResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def send_otp(
    payload: SendOtpRequest,
    request: Request,
    response: Response,
    session_id: SessionId,
) -> SendOtpResponse:
    """Record the code for this session and hand it to the SMS gateway."""
    service = _resolve_credential_service(request)
    try:
        result = await service.issue(
            session_id=session_id,
            identity=Identity(name=payload.name or "", phone=payload.phone or ""),
            credential=payload.otp or "",
        )
    except InvalidInputError as exc:
        raise invalid_input_error(str(exc)) from exc

    timestamp = datetime.now(tz=UTC)
    if result.dispatched:
        return SendOtpResponse(
            success=True,
            message=_OTP_SENT_MESSAGE,
            timestamp=timestamp,
            credential_recorded=result.recorded,
            gateway_response=result.dispatch.payload,
        )

    # The code is recorded; only delivery is unconfirmed.
    response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return SendOtpResponse(
        success=False,
        error=_dispatch_error_code(result.dispatch),
        message=result.dispatch.detail or "Failed to send SMS.",
        timestamp=timestamp,
        credential_recorded=result.recorded,
    )


@router.post(
    "/api/verify-otp",
    tags=["otp"],
    response_model=VerifyOtpResponse,
    status_code=status.HTTP_200_OK,
)
async def verify_otp(
    payload: VerifyOtpRequest,
    request: Request,
    session_id: SessionId,
) -> VerifyOtpResponse:
    """Verify the presented code against this session's pending code."""
    service = _resolve_credential_service(request)
    try:
        result = await service.verify(
            session_id=session_id,
            presented=payload.otp or "",
        )
    except NoPendingCredentialError as exc:
        raise _no_pending_credential_error(str(exc)) from exc
    except InvalidCredentialError as exc:
        raise _invalid_credential_error(str(exc)) from exc
    except CredentialExpiredError as exc:
        raise _credential_expired_error(str(exc)) from exc

    return VerifyOtpResponse(
        success=True,
        message=_OTP_VERIFIED_MESSAGE,
        user=VerifiedUser(
            name=result.identity.name,
            phone=result.identity.phone,
        ),
        timestamp=datetime.now(tz=UTC),
    )


def _dispatch_error_code(result: GatewayResult) -> str:
    """Map gateway failure classes onto envelope error codes."""
    if result.failure == GATEWAY_FAILURE_TIMEOUT:
        return ERROR_GATEWAY_TIMEOUT
    return ERROR_GATEWAY_ERROR


def _no_pending_credential_error(message: str) -> HTTPException:
    return api_error(
        status_code=status.HTTP_400_BAD_REQUEST,
        error=ERROR_NO_PENDING_CREDENTIAL,
        message=message,
    )


def _invalid_credential_error(message: str) -> HTTPException:
    return api_error(
        status_code=status.HTTP_400_BAD_REQUEST,
        error=ERROR_INVALID_CREDENTIAL,
        message=message,
    )


def _credential_expired_error(message: str) -> HTTPException:
    return api_error(
        status_code=status.HTTP_410_GONE,
        error=ERROR_CREDENTIAL_EXPIRED,
        message=message,
    )


def _resolve_credential_service(request: Request) -> CredentialService:
    """Load the credential service from FastAPI state with explicit failure mode."""
    request_obj = cast("object", request)
    app_obj = cast("object", getattr(request_obj, "app", None))
    state_obj = cast("object", getattr(app_obj, "state", None))
    service_obj = getattr(state_obj, "credential_service", None)
    if not isinstance(service_obj, CredentialService):
        message = "Missing credential service: app.state.credential_service."
        raise TypeError(message)
    return service_obj
