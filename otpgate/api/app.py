"""FastAPI application factory and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, cast, runtime_checkable

from typing_extensions import override
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import PlainTextResponse, Response
from starlette.staticfiles import StaticFiles

from otpgate.api.errors import install_exception_handlers
from otpgate.api.routes.health import router as health_router
from otpgate.api.routes.otp import router as otp_router
from otpgate.api.routes.records import router as records_router
from otpgate.api.routes.site import router as site_router
from otpgate.api.state import resolve_app_settings
from otpgate.config.logging import correlation_id, init_logging
from otpgate.config.settings import AppSettings, load_settings
from otpgate.otp import (
    CredentialService,
    GatewayDispatcher,
    GatewayRequest,
    GatewayResult,
    InMemorySessionStore,
    SessionStore,
)
from otpgate.storage import (
    MigrationRunnerDependency,
    SqliteSessionStore,
    StorageRuntime,
    create_storage_runtime,
    dispose_storage_runtime,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from pathlib import Path

    from starlette.datastructures import Headers
    from starlette.types import Scope

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Request-ID"


class StartupDependencyError(RuntimeError):
    """Raised when required startup dependencies are missing."""

    @classmethod
    def missing_container(cls) -> StartupDependencyError:
        """Build error for absent dependency container on app state."""
        message = "Missing startup dependency container: app.state.dependencies."
        return cls(message)

    @classmethod
    def missing_named_dependency(cls, name: str) -> StartupDependencyError:
        """Build error for absent named dependency in the container."""
        message = f"Missing startup dependency: {name}."
        return cls(message)


class StartupDependencyTypeError(TypeError):
    """Raised when a dependency lacks startup/shutdown lifecycle hooks."""

    @classmethod
    def invalid_dependency(cls, name: str) -> StartupDependencyTypeError:
        """Build error for dependency objects with wrong runtime type."""
        message = (
            f"Invalid startup dependency '{name}': expected startup/shutdown hooks."
        )
        return cls(message)


@runtime_checkable
class LifecycleDependency(Protocol):
    """Protocol for startup/shutdown-managed app dependencies."""

    async def startup(self) -> None:
        """Run dependency startup actions."""

    async def shutdown(self) -> None:
        """Run dependency shutdown actions."""


@runtime_checkable
class GatewayLifecycle(LifecycleDependency, Protocol):
    """Lifecycle-managed gateway dispatcher used by the credential service."""

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


class AllowlistCORSMiddleware(CORSMiddleware):
    """CORS middleware that emits no CORS headers for blocked preflight origins."""

    @override
    def preflight_response(self, request_headers: Headers) -> Response:
        """Reject non-allowlisted preflight requests without CORS headers."""
        origin = request_headers.get("origin")
        if origin is not None and not self.is_allowed_origin(origin=origin):
            return PlainTextResponse("Disallowed CORS origin", status_code=400)
        return super().preflight_response(request_headers)


class PublicAssets(StaticFiles):
    """Static files that answer unknown non-GET paths like any unmatched route."""

    @override
    async def get_response(self, path: str, scope: Scope) -> Response:
        """Answer non-GET/HEAD requests with 404."""
        if scope["method"] not in {"GET", "HEAD"}:
            raise StarletteHTTPException(status_code=404)
        return await super().get_response(path, scope)


@dataclass(slots=True)
class StartupDependencies:
    """Container for dependency lifecycle hooks managed by app lifespan."""

    db: LifecycleDependency
    gateway: GatewayLifecycle


@dataclass(slots=True)
class NoopDependency:
    """No-op lifecycle dependency for backends without startup work."""

    name: str

    async def startup(self) -> None:
        """No-op startup hook."""
        logger.debug("Startup stub executed for %s", self.name)

    async def shutdown(self) -> None:
        """No-op shutdown hook."""
        logger.debug("Shutdown stub executed for %s", self.name)


def _default_dependencies(settings: AppSettings) -> StartupDependencies:
    """Create startup dependencies for the configured session backend."""
    db: LifecycleDependency
    if settings.session_backend == "sqlite":
        db = MigrationRunnerDependency(db_path=settings.db_path)
    else:
        db = NoopDependency(name="db")
    return StartupDependencies(
        db=db,
        gateway=GatewayDispatcher(settings=settings.gateway),
    )


def _resolve_startup_dependencies(app: FastAPI) -> StartupDependencies:
    """Resolve and validate dependency hooks required for app startup."""
    raw_state = cast("object", app.state)
    raw_dependencies = getattr(raw_state, "dependencies", None)
    if raw_dependencies is None:
        raise StartupDependencyError.missing_container()

    dependency_container = cast("object", raw_dependencies)
    for name in ("db", "gateway"):
        dependency = getattr(dependency_container, name, None)
        if dependency is None:
            raise StartupDependencyError.missing_named_dependency(name)
        if not isinstance(dependency, LifecycleDependency):
            raise StartupDependencyTypeError.invalid_dependency(name)

    return cast("StartupDependencies", raw_dependencies)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start dependencies in order, wire the credential service, then tear down."""
    settings = resolve_app_settings(app)
    dependencies = _resolve_startup_dependencies(app)
    storage_runtime: StorageRuntime | None = None
    startup_order: tuple[LifecycleDependency, ...] = (
        dependencies.db,
        dependencies.gateway,
    )
    started_dependencies: list[LifecycleDependency] = []

    logger.info(
        "Starting otpgate (bind=%s, port=%s, session_backend=%s)",
        settings.bind,
        settings.port,
        settings.session_backend,
    )
    try:
        for dependency in startup_order:
            await dependency.startup()
            started_dependencies.append(dependency)

        store: SessionStore
        if settings.session_backend == "sqlite":
            storage_runtime = create_storage_runtime(settings.db_path)
            app.state.storage_runtime = storage_runtime
            store = SqliteSessionStore(
                session_factory=storage_runtime.session_factory,
            )
        else:
            store = InMemorySessionStore()

        app.state.credential_service = CredentialService(
            store=store,
            dispatcher=dependencies.gateway,
            credential_ttl_seconds=settings.credential_ttl_seconds,
        )
        yield
    finally:
        for dependency in reversed(started_dependencies):
            await dependency.shutdown()
        if storage_runtime is not None:
            await dispose_storage_runtime(storage_runtime)
        _clear_runtime_state(app)
        logger.info("Shutting down otpgate")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure a new FastAPI application instance."""
    resolved_settings = load_settings() if settings is None else settings
    init_logging(resolved_settings.log_level)

    app = FastAPI(
        title="otpgate",
        description="Session-bound one-time code issuance and verification",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = resolved_settings
    app.state.dependencies = _default_dependencies(resolved_settings)

    install_exception_handlers(app)
    _configure_cors(app=app, allow_origins=resolved_settings.cors_allow_origins)
    app.middleware("http")(_bind_correlation_id)

    app.include_router(health_router)
    app.include_router(otp_router)
    app.include_router(records_router)
    app.include_router(site_router)
    _mount_public_assets(app=app, public_dir=resolved_settings.public_dir)
    return app


async def _bind_correlation_id(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a per-request correlation id for log records and echo it back."""
    request_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid4())
    token = correlation_id.set(request_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id.reset(token)
    response.headers[CORRELATION_ID_HEADER] = request_id
    return response


def _mount_public_assets(*, app: FastAPI, public_dir: Path) -> None:
    """Serve the public directory at the site root, behind every API route."""
    if not public_dir.is_dir():
        logger.warning(
            "Public directory missing; static assets disabled (dir=%s)",
            public_dir,
        )
        return
    app.mount("/", PublicAssets(directory=public_dir.as_posix()), name="public")


def _configure_cors(*, app: FastAPI, allow_origins: tuple[str, ...]) -> None:
    """Attach default-deny CORS policy with explicit allowlisted origins."""
    if not allow_origins:
        return

    app.add_middleware(
        AllowlistCORSMiddleware,
        allow_origins=list(allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


def _clear_runtime_state(app: FastAPI) -> None:
    """Remove runtime objects from app state after lifespan shutdown."""
    state = cast("object", app.state)
    for name in ("storage_runtime", "credential_service"):
        if hasattr(state, name):
            delattr(state, name)
