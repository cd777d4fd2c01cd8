"""mirrorbot webhook API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI

from mirrorbot.api.deps import Services, close_services, get_services, init_services
from mirrorbot.api.errors import register_error_handlers
from mirrorbot.api.middleware.request_id import RequestIDMiddleware
from mirrorbot.api.routers import artifacts, webhook
from mirrorbot.api.schemas import HealthResponse
from mirrorbot.core.config import Settings
from mirrorbot.core.logging import setup_logging

log = structlog.get_logger("mirrorbot.api")


def _warn_missing_tools(settings: Settings) -> None:
    required = {
        "mirror repository": settings.mirror_dir,
        "upstream repository": settings.upstream_dir,
        "webrev script": settings.webrev_script,
        "jcheck extension": settings.jcheck_extension,
    }
    for what, path in required.items():
        if not path.exists():
            log.warning("startup.missing", what=what, path=str(path))


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build the service graph. Shutdown: close HTTP clients."""
    services = init_services()
    _warn_missing_tools(services.settings)
    log.info(
        "startup.ready",
        home=str(services.settings.home),
        bot=services.settings.bot_username,
        signed_webhooks=bool(services.settings.webhook_secret),
    )
    yield
    await close_services()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(title="mirrorbot", docs_url=None, redoc_url=None, lifespan=_lifespan)

    register_error_handlers(app)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"], response_model=HealthResponse)
    async def health(services: Services = Depends(get_services)) -> HealthResponse:
        return HealthResponse(
            status="degraded" if services.reporter.degraded else "ok",
            upstream_busy=services.apply_engine.busy,
        )

    app.include_router(webhook.router, tags=["webhook"])
    app.include_router(artifacts.router, prefix="/pr", tags=["artifacts"])

    return app
