"""FastAPI application factory and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, cast, runtime_checkable

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authrelay.api.bearer_auth import require_bearer_auth
from authrelay.api.routes.bot_action import router as bot_action_router
from authrelay.api.routes.health import router as health_router
from authrelay.api.routes.login_alerts import router as login_alerts_router
from authrelay.api.services import build_relay_services
from authrelay.config.logging import (
    bind_correlation_id,
    correlation_id,
    init_logging,
    reset_correlation_id,
)
from authrelay.config.settings import AppSettings, load_settings
from authrelay.errors import (
    AlreadyResolvedError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    RelayError,
    UnauthorizedError,
    ValidationError,
)
from authrelay.storage import (
    MigrationRunnerDependency,
    StorageRuntime,
    WriterQueue,
    WriterQueueProtocol,
    create_storage_runtime,
    dispose_storage_runtime,
)
from authrelay.telegram import (
    BotClientManager,
    BotCredentials,
    NotificationDispatcher,
    TelethonNotificationDispatcher,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Most specific class first; BadRequestError is a ValidationError.
_ERROR_STATUS_CODES: tuple[tuple[type[RelayError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyResolvedError, status.HTTP_409_CONFLICT),
    (ExpiredError, status.HTTP_410_GONE),
    (DeliveryError, status.HTTP_502_BAD_GATEWAY),
)


class StartupWriterQueueError(RuntimeError):
    """Raised when app writer queue setup is missing required hooks."""

    @classmethod
    def invalid_factory(cls) -> StartupWriterQueueError:
        """Build deterministic error for invalid writer queue factory objects."""
        message = "Invalid writer queue factory: expected callable on app.state."
        return cls(message)

    @classmethod
    def invalid_queue(cls) -> StartupWriterQueueError:
        """Build deterministic error for invalid writer queue runtime objects."""
        message = "Invalid writer queue: expected submit(...) and close() methods."
        return cls(message)


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


class WriterQueueLifecycle(WriterQueueProtocol, Protocol):
    """Protocol for app-scoped writer queue lifecycle behavior."""

    async def close(self) -> None:
        """Stop queue worker and drain outstanding write jobs."""


@dataclass(slots=True)
class StartupDependencies:
    """Container for dependency lifecycle hooks managed by app lifespan."""

    db: LifecycleDependency
    telegram: LifecycleDependency


def _default_dependencies(settings: AppSettings) -> StartupDependencies:
    """Create the migration runner and the bot client manager."""
    return StartupDependencies(
        db=MigrationRunnerDependency(),
        telegram=BotClientManager(credentials=BotCredentials.from_settings(settings)),
    )


def _default_dispatcher_factory(
    telegram: LifecycleDependency,
) -> NotificationDispatcher:
    """Send through the bot manager's client, or fail every send without one."""
    if isinstance(telegram, BotClientManager):
        return TelethonNotificationDispatcher(client_provider=telegram.get_client)
    return TelethonNotificationDispatcher(client_provider=lambda: None)


def _resolve_startup_dependencies(app: FastAPI) -> StartupDependencies:
    """Resolve and validate dependency hooks required for app startup."""
    raw_state = cast("object", app.state)
    raw_dependencies = getattr(raw_state, "dependencies", None)
    if raw_dependencies is None:
        raise StartupDependencyError.missing_container()

    dependency_container = cast("object", raw_dependencies)
    for name in ("db", "telegram"):
        dependency = getattr(dependency_container, name, None)
        if dependency is None:
            raise StartupDependencyError.missing_named_dependency(name)
        if not isinstance(dependency, LifecycleDependency):
            raise StartupDependencyTypeError.invalid_dependency(name)

    return cast("StartupDependencies", raw_dependencies)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown events."""
    dependencies = _resolve_startup_dependencies(app)
    settings = load_settings()
    storage_runtime: StorageRuntime | None = None
    writer_queue: WriterQueueLifecycle | None = None
    startup_order: tuple[LifecycleDependency, ...] = (
        dependencies.db,
        dependencies.telegram,
    )
    started_dependencies: list[LifecycleDependency] = []

    logger.info(
        "Starting AuthRelay (bind=%s, db=%s, bot_enabled=%s)",
        settings.bind,
        settings.db_path,
        settings.bot_enabled,
    )
    try:
        storage_runtime = create_storage_runtime(settings)
        writer_queue = _build_writer_queue(app)
        services = build_relay_services(
            settings=settings,
            runtime=storage_runtime,
            writer_queue=writer_queue,
            dispatcher=_build_dispatcher(app, dependencies.telegram),
        )
        if isinstance(dependencies.telegram, BotClientManager):
            dependencies.telegram.attach_handler(services.interactions)
        app.state.settings = settings
        app.state.storage_runtime = storage_runtime
        app.state.writer_queue = writer_queue
        app.state.services = services
        for dependency in startup_order:
            await dependency.startup()
            started_dependencies.append(dependency)
        yield
    finally:
        for dependency in reversed(started_dependencies):
            await dependency.shutdown()
        if writer_queue is not None:
            await writer_queue.close()
        if storage_runtime is not None:
            await dispose_storage_runtime(storage_runtime)
        _clear_runtime_state(app)
        logger.info("Shutting down AuthRelay")


def create_app() -> FastAPI:
    """Create and configure a new FastAPI application instance."""
    settings = load_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="AuthRelay",
        description="Telegram relay for website OTP codes and login alerts",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    protected_route_dependencies = [Depends(require_bearer_auth)]
    app.state.dependencies = _default_dependencies(settings)
    app.state.writer_queue_factory = WriterQueue
    app.state.dispatcher_factory = _default_dispatcher_factory
    _install_error_handlers(app)
    _install_correlation_middleware(app)
    app.include_router(health_router)
    app.include_router(
        bot_action_router,
        dependencies=protected_route_dependencies,
    )
    app.include_router(
        login_alerts_router,
        dependencies=protected_route_dependencies,
    )
    return app


def _install_error_handlers(app: FastAPI) -> None:
    """Render every failure in the `{status: "error", message}` envelope."""

    async def _relay_error(request: Request, exc: Exception) -> Response:
        _ = request
        status_code = _status_code_for(cast("RelayError", exc))
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("Relay action failed: %s", exc)
        return _error_response(status_code, str(exc))

    async def _validation_error(request: Request, exc: Exception) -> Response:
        _ = request
        errors = cast("RequestValidationError", exc).errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        detail = first.get("msg", "Invalid request.")
        message = f"Invalid request: {location}: {detail}" if location else detail
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    async def _http_error(request: Request, exc: Exception) -> Response:
        _ = request
        http_exc = cast("StarletteHTTPException", exc)
        return _error_response(
            http_exc.status_code,
            str(http_exc.detail),
            headers=http_exc.headers,
        )

    app.add_exception_handler(RelayError, _relay_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)


def _install_correlation_middleware(app: FastAPI) -> None:
    """Bind a correlation id per request and echo it back."""

    @app.middleware("http")
    async def _correlation(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        token = bind_correlation_id(request.headers.get(REQUEST_ID_HEADER))
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = correlation_id.get() or ""
            return response
        finally:
            reset_correlation_id(token)


def _status_code_for(exc: RelayError) -> int:
    for error_type, status_code in _ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_response(
    status_code: int,
    message: str,
    *,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def _build_writer_queue(app: FastAPI) -> WriterQueueLifecycle:
    """Construct writer queue from app-state factory with runtime validation."""
    factory_obj = getattr(
        cast("object", app.state),
        "writer_queue_factory",
        WriterQueue,
    )
    if not callable(factory_obj):
        raise StartupWriterQueueError.invalid_factory()

    queue_obj = cast("object", factory_obj())
    submit_obj = getattr(queue_obj, "submit", None)
    close_obj = getattr(queue_obj, "close", None)
    if not callable(submit_obj) or not callable(close_obj):
        raise StartupWriterQueueError.invalid_queue()
    return cast("WriterQueueLifecycle", queue_obj)


def _build_dispatcher(
    app: FastAPI,
    telegram: LifecycleDependency,
) -> NotificationDispatcher:
    """Construct the outbound dispatcher from the app-state factory."""
    factory_obj = getattr(
        cast("object", app.state),
        "dispatcher_factory",
        _default_dispatcher_factory,
    )
    factory = cast(
        "Callable[[LifecycleDependency], NotificationDispatcher]",
        factory_obj,
    )
    return factory(telegram)


def _clear_runtime_state(app: FastAPI) -> None:
    """Remove runtime objects from app state after lifespan shutdown."""
    state = cast("object", app.state)
    for name in ("settings", "storage_runtime", "writer_queue", "services"):
        if hasattr(state, name):
            delattr(state, name)
