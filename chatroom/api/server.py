"""
Chat Room API Server
====================
Application factory: builds the Container, wires routes, error handlers and
CORS, and ties the store connection and the sweeper to the app lifespan.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.exceptions import ChatError
from ..core.logger import get_logger
from ..infrastructure.config.config_loader import get_settings_from_working_directory
from ..infrastructure.config.settings import AppSettings
from ..infrastructure.container import Container
from .error_mapper import ErrorMapper
from .messages_routes import router as messages_router
from .participants_routes import router as participants_router


def create_app(settings: Optional[AppSettings] = None, container: Optional[Container] = None) -> FastAPI:
    """Creates the chat room FastAPI application."""

    # 1. Initialize Dependencies
    if container is not None:
        settings = container.settings
    settings = settings or get_settings_from_working_directory()
    logger = get_logger("chatroom.api", settings.logging)
    container = container or Container(settings)
    error_mapper = ErrorMapper()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("server.startup", {"app_name": settings.app_name, "version": settings.version})
        await container.start()

        yield

        logger.info("server.shutdown", {})
        await container.stop()

    app = FastAPI(title=settings.app_name, version=settings.version, debug=settings.debug, lifespan=lifespan)
    app.state.container = container
    app.state.error_mapper = error_mapper

    # 2. Error handling
    async def chat_error_handler(request: Request, exc: ChatError):
        info = error_mapper.map_exception(exc)
        if info.http_status >= 500:
            logger.error("api.request_failed", {
                "endpoint": str(request.url.path),
                "method": request.method,
                "error_code": info.error_code,
                "detail": str(exc.__cause__ or exc),
            })
        return JSONResponse(status_code=info.http_status, content=info.to_body())

    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid '{location}': {first.get('msg', 'invalid value')}" if location else "Invalid request body"
        info = error_mapper.map("validation_error", message=message)
        return JSONResponse(status_code=info.http_status, content=info.to_body())

    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("api.unhandled_exception", {
            "endpoint": str(request.url.path),
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        }, exc_info=True)
        info = error_mapper.map_exception(exc)
        return JSONResponse(status_code=info.http_status, content=info.to_body())

    app.add_exception_handler(ChatError, chat_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    # 3. Routes
    app.include_router(participants_router)
    app.include_router(messages_router)

    @app.get("/health")
    async def health():
        sweeper = container.sweeper
        last_report = sweeper.last_report.to_dict() if sweeper.last_report else None
        return JSONResponse({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "store": container.store.get_storage_type(),
            "sweeper": {
                "running": sweeper.is_running,
                "runs": sweeper.runs,
                "failures": sweeper.failures,
                "last_report": last_report,
            },
        })

    # 4. Middleware
    allow_origins = settings.server.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app
