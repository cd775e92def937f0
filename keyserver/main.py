import socket
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

from .application.key_service import KeyService
from .config import Settings, settings
from .domain.exceptions import DomainError, StoreIOError
from .infrastructure.notifications.telegram import Dispatcher, TelegramDispatcher
from .infrastructure.storage.store import JsonFileStore
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.api_routes import api_router
from .presentation.error_handlers import (
    handle_domain_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from .telemetry import setup_telemetry

DESCRIPTION: Final = """
Inventory of license-style keys.

Clients ask for a free key, mark it in use and release it again. Operators see
counts, per-key history, a global event log and activation statistics.

## Low-stock warnings

After every change that affects the number of free keys, the free count is
compared against the configured thresholds (default 20 and 10). Each new
crossing sends one Telegram message; the warning resets once stock is back at
or above the highest threshold.
""".strip()


def create_app(
    app_settings: Settings | None = None, dispatcher: Dispatcher | None = None
) -> FastAPI:
    """Build the application.

    Args:
        app_settings: Settings to use instead of the global instance
        dispatcher: Notification dispatcher; defaults to Telegram from settings
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app_settings=cfg)
        logger = get_logger(__name__)

        # The store is loaded once; every mutation rewrites it in full
        service = KeyService(
            JsonFileStore(cfg.db_file),
            dispatcher or TelegramDispatcher.from_settings(cfg),
        )
        service.startup()
        app.state.key_service = service
        logger.info(
            "Key registry loaded",
            db_file=cfg.db_file,
            keys=len(service.all_records()),
            free=service.free_count(),
        )

        log_system_info(socket.gethostname(), cfg.db_file, cfg.telegram_enabled)

        yield

        logger.info("Application shutdown completed")

    app = FastAPI(
        title=cfg.app_name,
        version=cfg.version,
        debug=cfg.debug,
        lifespan=lifespan,
        description=DESCRIPTION,
        openapi_tags=[
            {"name": "keys", "description": "Key lifecycle operations"},
            {"name": "history", "description": "Event log and statistics"},
            {"name": "notifications", "description": "Low-stock warning settings"},
        ],
    )

    setup_telemetry(app, cfg)
    app.middleware("http")(log_requests_middleware)

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        """Global handler for domain-specific errors."""
        logger = get_logger(__name__)
        log = logger.error if isinstance(exc, StoreIOError) else logger.warning
        log(
            "Domain error occurred",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return handle_domain_error(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Global handler for request validation errors."""
        logger = get_logger(__name__)
        logger.warning(
            "Request validation error occurred",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return handle_request_validation_error(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Global handler for unexpected errors."""
        logger = get_logger(__name__)
        logger.error(
            "Unexpected error occurred",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )
        return handle_unexpected_error(request)

    app.include_router(api_router)

    # Dashboard files, mounted last so API routes take precedence
    if Path(cfg.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=cfg.static_dir, html=True), name="static")

    return app


app: Final = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
