"""FastAPI application factory for the coordination core."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..app import Application
from ..errors import AutonomyError
from ..logging_config import get_logger
from .routes import control, messaging, observability, tasks

logger = get_logger(__name__)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:5174"

# Process-wide application instance
_app: Application | None = None


def get_app() -> Application:
    """Process-wide Application, created on first use."""
    global _app
    if _app is None:
        _app = Application()
    return _app


def _cors_origins() -> list[str]:
    raw = os.getenv("API_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Build the API around ``application``; its lifecycle follows the server's."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await application.start()
        try:
            yield
        finally:
            await application.stop()

    fastapi_app = FastAPI(
        title="Autonomy API",
        description="Control and observability API for the agent coordination core",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @fastapi_app.exception_handler(AutonomyError)
    async def autonomy_error_handler(request: Request, exc: AutonomyError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    for router in (
        messaging.create_messaging_router(application),
        observability.create_observability_router(application),
        control.create_control_router(application),
        tasks.create_tasks_router(application),
    ):
        fastapi_app.include_router(router)

    return fastapi_app
