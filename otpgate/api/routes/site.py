"""Game page, favicon and configuration echo endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field

from otpgate.api.errors import api_error
from otpgate.api.state import resolve_app_settings

router = APIRouter()


class GatewayConfigResponse(BaseModel):
    """Non-secret view of the SMS gateway configuration."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    sender: str
    route: str
    template_id: str = Field(alias="templateId")
    timeout_seconds: float = Field(alias="timeoutSeconds")
    credentials_configured: bool = Field(alias="credentialsConfigured")


@router.get("/", tags=["site"], include_in_schema=False)
async def get_game_page(request: Request) -> FileResponse:
    """Serve the configured game page from the public directory."""
    settings = resolve_app_settings(request.app)
    page_path = settings.public_dir / settings.game_page
    if not page_path.is_file():
        raise api_error(
            status_code=status.HTTP_404_NOT_FOUND,
            error="page_not_found",
            message=f"Game page not found: {settings.game_page}.",
        )
    return FileResponse(page_path, media_type="text/html")


@router.get("/favicon.ico", tags=["site"], include_in_schema=False)
async def get_favicon() -> Response:
    """Answer favicon probes without a body."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/config", tags=["site"], response_model=GatewayConfigResponse)
async def get_gateway_config(request: Request) -> GatewayConfigResponse:
    """Echo gateway configuration without username or API key."""
    gateway = resolve_app_settings(request.app).gateway
    return GatewayConfigResponse(
        endpoint=gateway.endpoint,
        sender=gateway.sender,
        route=gateway.route,
        template_id=gateway.template_id,
        timeout_seconds=gateway.timeout_seconds,
        credentials_configured=gateway.has_credentials,
    )
