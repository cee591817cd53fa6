"""GigBridge API -- Main Application Entry Point

Creates the FastAPI application, configures logging and CORS middleware,
registers the domain exception handlers and mounts the engagement routers
(proposals, contracts, payments) under the /api/v1 prefix.

Run with::

    uvicorn gigbridge.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gigbridge.core.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup:
      - Log the selected payment gateway mode.

    Shutdown:
      - Dispose of the database engine's connection pool.
    """
    from gigbridge.api.deps import engine

    logger.info(
        "%s %s starting (payment gateway: %s)",
        settings.app_name, settings.app_version, settings.payment_gateway_mode,
    )

    yield

    await engine.dispose()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    """Build the application with all routers and exception handlers."""
    from gigbridge.api.errors import register_exception_handlers
    from gigbridge.api.routes import contracts, payments, proposals

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    @application.get("/health", tags=["Health"])
    async def health():
        """Lightweight health check for load balancers and readiness probes."""
        return {"status": "ok", "version": settings.app_version}

    _prefix = settings.api_v1_prefix
    application.include_router(proposals.router, prefix=_prefix)
    application.include_router(contracts.router, prefix=_prefix)
    application.include_router(payments.router, prefix=_prefix)

    return application


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
