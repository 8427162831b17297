"""Acknowledge-only endpoints for player and game result submissions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from otpgate.otp import mask_phone

router = APIRouter()

logger = logging.getLogger(__name__)


class SaveUserRequest(BaseModel):
    """Player details submitted after verification."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str | None = None
    phone: str | None = None
    timestamp: str | None = None


class SaveUserResponse(BaseModel):
    """Acknowledgement for a player submission."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    user_id: str = Field(alias="userId")
    timestamp: datetime


class SaveGameResultRequest(BaseModel):
    """Outcome of one game round."""

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

    phone: str | None = None
    name: str | None = None
    game_mode: str | None = Field(default=None, alias="gameMode")
    result: object | None = None
    timestamp: str | None = None


class SaveGameResultResponse(BaseModel):
    """Acknowledgement for a game result submission."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    game_id: str = Field(alias="gameId")
    timestamp: datetime


@router.post("/api/save-user", tags=["records"], response_model=SaveUserResponse)
async def save_user(payload: SaveUserRequest) -> SaveUserResponse:
    """Log the player submission and acknowledge it; nothing is persisted."""
    phone = payload.phone or ""
    logger.info(
        "Save user request",
        extra={
            "player_name": payload.name,
            "phone": mask_phone(phone),
            "client_timestamp": payload.timestamp,
        },
    )
    return SaveUserResponse(
        success=True,
        message="User saved successfully",
        user_id=f"user_{phone}",
        timestamp=datetime.now(tz=UTC),
    )


@router.post(
    "/api/save-game-result",
    tags=["records"],
    response_model=SaveGameResultResponse,
)
async def save_game_result(payload: SaveGameResultRequest) -> SaveGameResultResponse:
    """Log the game result and acknowledge it; nothing is persisted."""
    now = datetime.now(tz=UTC)
    logger.info(
        "Game result",
        extra={
            "player_name": payload.name,
            "phone": mask_phone(payload.phone or ""),
            "game_mode": payload.game_mode,
            "result": payload.result,
            "client_timestamp": payload.timestamp,
        },
    )
    return SaveGameResultResponse(
        success=True,
        message="Game result saved successfully",
        game_id=f"game_{int(now.timestamp() * 1000)}",
        timestamp=now,
    )
