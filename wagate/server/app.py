"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from wagate import __version__
from wagate.client.base import ClientFactory
from wagate.client.bridge import bridge_client_factory
from wagate.server.config import ServerConfig, load_config_from_env
from wagate.server.middleware.logging import RequestLoggingMiddleware
from wagate.server.models.responses import ErrorResponse, ErrorDetail
from wagate.server.routes.health import create_health_router
from wagate.server.routes.sessions import create_session_router
from wagate.sessions.errors import GatewayError
from wagate.sessions.orchestrator import SessionOrchestrator
from wagate.sessions.publisher import AdminInfoPublisher

logger = logging.getLogger(__name__)


def build_orchestrator(
    config: ServerConfig, client_factory: Optional[ClientFactory] = None,
) -> SessionOrchestrator:
    """Wire an orchestrator from configuration.

    Without an explicit ``client_factory`` sessions connect through the
    websocket bridge named in ``config.bridge``.
    """
    if client_factory is None:
        client_factory = bridge_client_factory(
            config.bridge.url, token=config.bridge.token, send_timeout=config.bridge.send_timeout,
        )
    publisher = AdminInfoPublisher(
        endpoint=config.admin.endpoint,
        timeout=config.admin.timeout,
        max_attempts=config.admin.poll_attempts,
        interval=config.admin.poll_interval,
    )
    return SessionOrchestrator(
        client_factory=client_factory,
        sessions_dir=config.sessions_dir,
        publisher=publisher,
        auto_recreate_on_disconnect=config.lifecycle.auto_recreate_on_disconnect,
        auto_recreate_on_auth_failure=config.lifecycle.auto_recreate_on_auth_failure,
    )


def create_app(
    config: Optional[ServerConfig] = None,
    client_factory: Optional[ClientFactory] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When called without arguments (e.g. via uvicorn --factory), loads
    configuration from environment variables.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    if config is None:
        config = load_config_from_env()

    orchestrator = build_orchestrator(config, client_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        config.sessions_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Sessions directory at %s", config.sessions_dir)
        if config.recover_on_startup:
            orchestrator.recover()
        else:
            logger.info("Session recovery disabled")
        yield
        await orchestrator.shutdown()
        logger.info("All sessions stopped")

    app = FastAPI(
        title="wagate",
        description="Multi-session messaging gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(create_session_router(orchestrator))
    app.include_router(create_health_router(orchestrator))
    return app


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    response = ErrorResponse(error=ErrorDetail(code=exc.error_code, message=exc.message, details=exc.details))
    return JSONResponse(status_code=exc.status_code, content=response.model_dump())


async def _validation_error_handler(
    request: Request, exc: Union[ValidationError, RequestValidationError],
) -> JSONResponse:
    response = ErrorResponse(error=ErrorDetail(code="INVALID_FORMAT", message="Request validation failed", details={"validation_errors": jsonable_encoder(exc.errors())}))
    return JSONResponse(status_code=400, content=response.model_dump())
