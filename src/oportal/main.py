"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (optional table creation,
engine disposal). Middleware, CORS, error handlers and routers are all
registered here; each concern lives in its own module.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oportal import __version__
from oportal.api import api_router
from oportal.api.errors import register_error_handlers
from oportal.config import settings
from oportal.middleware.request_id import RequestIdMiddleware
from oportal.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    from oportal.db.engine import engine, init_models

    logger.info(
        "oportal.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )
    if settings.auto_create_tables:
        await init_models()

    yield

    logger.info("oportal.shutdown")
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="oportal",
        description="User accounts, JWT sessions and permissioned, versioned content",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: oportal.main:app)
app = create_app()
