"""
FastAPI application entry point.

Wires the relay routes, the health probe and the browser page together, and
maps relay errors onto JSON error responses.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional, Union

from .cors import cors_headers
from .models.common import APIError
from .routers import relay, health, ui
from src.models.manager import BackendManager
from src.models.providers.base import MalformedPayload, UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

# Global application state
app_state = {}


def _error_response(status_code: int, error_code: str, exc: Exception) -> JSONResponse:
    body = APIError(error=str(exc), error_code=error_code)
    return JSONResponse(
        content=body.model_dump(mode="json"),
        status_code=status_code,
        headers=cors_headers(),
    )


async def malformed_payload_handler(request: Request, exc: MalformedPayload) -> JSONResponse:
    logger.warning(f"Rejected payload on {request.url.path}: {exc}")
    return _error_response(400, "malformed_payload", exc)


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
    logger.error(f"Backend call for {request.url.path} failed: {exc}")
    if isinstance(exc, UpstreamTimeout):
        return _error_response(504, "upstream_timeout", exc)
    return _error_response(502, "upstream_unavailable", exc)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    body = APIError(error="Internal server error", error_code="internal_error")
    return JSONResponse(
        content=body.model_dump(mode="json"),
        status_code=500,
        headers=cors_headers(),
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException) -> Response:
    # unknown paths and unsupported methods on known paths both read as "Not found"
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not found", status_code=404)
    return await http_exception_handler(request, exc)


def create_app(config_path: Optional[Union[Path, str]] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    The backend manager is built in the lifespan hook, so tests can skip it
    entirely and override get_backend_manager instead.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting relay server...")
        backend_manager = BackendManager(config_path=config_path)
        app_state["backend_manager"] = backend_manager
        logger.info(f"Relaying to {backend_manager.config['backend']['settings']['base_url']}")

        yield  # Server runs here

        logger.info("Shutting down relay server...")
        backend_manager.cleanup()
        app_state.clear()

    app = FastAPI(
        title="Ollama Edge Relay",
        description="Simplified generation API over an Ollama-compatible backend",
        version=health.API_VERSION,
        lifespan=lifespan
    )

    app.add_exception_handler(MalformedPayload, malformed_payload_handler)
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(relay.router, prefix="/api", tags=["relay"])
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(ui.router, tags=["ui"])

    @app.options("/{path:path}", include_in_schema=False)
    async def preflight(path: str):
        return Response(status_code=200, headers=cors_headers())

    return app


# Create the FastAPI app instance
app = create_app()
