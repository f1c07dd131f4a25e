"""FastAPI application factory.

Learn: App factory pattern — create_app(settings) returns a configured FastAPI
instance. Everything a request needs hangs off app.state and is built here,
once, from the Settings object:
- db          → engine + session factory
- tokens      → TokenService (signing key, expiry)
- auth_gate   → AuthenticationGate
- blob_store  → LocalBlobStore
- redis       → set in lifespan when Redis is reachable, else None

Lifespan manages startup/shutdown (tables for SQLite, Redis, engine).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from tasktrack import __version__
from tasktrack.api import api_router
from tasktrack.api.errors import register_exception_handlers
from tasktrack.auth.gate import AuthenticationGate
from tasktrack.auth.tokens import TokenService
from tasktrack.config import Settings, get_settings
from tasktrack.db.engine import Database
from tasktrack.logging_config import configure_logging
from tasktrack.middleware.body_limit import BodySizeLimitMiddleware
from tasktrack.middleware.rate_limit import RateLimitMiddleware
from tasktrack.middleware.request_id import RequestIdMiddleware
from tasktrack.middleware.security import SecurityHeadersMiddleware
from tasktrack.redis_client import close_redis, init_redis
from tasktrack.storage import LocalBlobStore

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "tasktrack.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    if settings.is_sqlite:
        await app.state.db.create_all()

    try:
        app.state.redis = await init_redis(settings.redis_url)
        logger.info("tasktrack.redis_connected")
    except Exception as e:
        logger.warning("tasktrack.redis_unavailable", error=str(e))
        # Redis is optional: only rate limiting depends on it

    yield

    logger.info("tasktrack.shutdown")
    await close_redis(app.state.redis)
    app.state.redis = None
    await app.state.db.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.environment, settings.debug)

    app = FastAPI(
        title="TaskTrack",
        description="Personal task management with role-gated administration",
        version=__version__,
        lifespan=lifespan,
    )

    tokens = TokenService(settings)
    app.state.settings = settings
    app.state.db = Database(settings)
    app.state.tokens = tokens
    app.state.auth_gate = AuthenticationGate(tokens)
    app.state.blob_store = LocalBlobStore(settings.upload_dir, settings.public_base_url)
    app.state.redis = None

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → BodySizeLimit → handler
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir),
        name="uploads",
    )

    return app
