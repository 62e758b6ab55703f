"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from toonify.config import Settings

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toonify.api.errors import register_exception_handlers
from toonify.api.routes import router
from toonify.config import get_settings
from toonify.proxy.service import TransformationProxy
from toonify.proxy.upstream import UpstreamClient

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, settings: Settings, http_client: httpx.AsyncClient) -> None:
    """Attach settings and the proxy (built on ``http_client``) to the app."""
    app.state.settings = settings
    app.state.http_client = http_client
    app.state.proxy = TransformationProxy(settings, UpstreamClient(settings, http_client))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    key = settings.upstream_api_key or ""
    logger.info(
        "Starting Toonify (upstream=%s, model=%s, credential=%s, key_length=%d, timeout=%.0fs, long_running=%.0fs)",
        settings.upstream_url,
        settings.upstream_model,
        settings.credential_state,
        len(key),
        settings.upstream_timeout,
        settings.long_running_timeout,
    )

    http_client = httpx.AsyncClient()
    init_state(app, settings, http_client)

    logger.info("Toonify ready")
    yield

    logger.info("Shutting down Toonify")
    await http_client.aclose()
    logger.info("Toonify shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Toonify",
        description="Proxy that turns photos into cartoon illustrations via an image-generation service",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("toonify.main:app", host=settings.host, port=settings.port)
