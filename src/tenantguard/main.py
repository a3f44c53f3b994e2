"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenantguard.config import settings
from tenantguard.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the directory client for the app's lifetime and close it on shutdown."""
    from tenantguard.integrations.directory_client import DirectoryApiClient

    if getattr(app.state, "directory", None) is None:
        app.state.directory = DirectoryApiClient()
        owns_client = True
    else:
        owns_client = False

    logger.info("TenantGuard API started (directory=%s)", app.state.directory.base_url)
    yield

    # Shutdown
    for session in app.state.sessions:
        await session.reset()
    app.state.sessions.clear()
    if owns_client:
        await app.state.directory.aclose()
    logger.info("TenantGuard API shutdown complete")


def create_app(directory=None) -> FastAPI:
    """Create and configure the FastAPI application.

    *directory* replaces the HTTP directory client, e.g. with an in-memory
    fake in tests.
    """
    from tenantguard.rules.registry import get_default_registry
    from tenantguard.services.remediation.store import SessionStore

    app = FastAPI(
        title="TenantGuard API",
        version="0.4.0",
        description="Configuration risk evaluation and guided remediation for directory administration.",
        lifespan=lifespan,
    )
    app.state.directory = directory
    app.state.registry = get_default_registry()
    app.state.sessions = SessionStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from tenantguard.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from tenantguard.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Import and mount routers
    from tenantguard.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
