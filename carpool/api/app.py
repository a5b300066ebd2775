"""
FastAPI application factory.

* Registers routes for sessions and admin.
* Runs the idle-session expiry worker for the app lifetime.
* Closes open sessions and the shared HTTP client on shutdown.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carpool.api.middleware import limiter
from carpool.api.routes import admin, sessions
from carpool.config import settings
from carpool.infrastructure.http_client import close_http_client
from carpool.services.registry import SessionRegistry
from carpool.workers.expiry import start_expiry_loop, stop_expiry_loop

logging.basicConfig(level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the session expiry worker; close sessions and the HTTP client on shutdown."""
    await start_expiry_loop(app.state.registry)
    yield
    await stop_expiry_loop()
    await app.state.registry.close_all()
    await close_http_client()


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    app = FastAPI(
        title="Carpool Route Planner API",
        description=(
            "Turns free-text start and end locations into debounced address "
            "suggestions, resolved places and a drivable route with a "
            "ready-to-render map view."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry or SessionRegistry(settings)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(sessions.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
