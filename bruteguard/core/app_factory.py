"""Application factory for the demo FastAPI app.

Centralizes app construction (logging, middleware, handlers, guard, routers)
so tests can build isolated apps with their own settings and stores.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bruteguard.adapters.store.base import StoreFactory
from bruteguard.adapters.store.factory import create_store_factory
from bruteguard.api.routes import build_auth_router, health_router
from bruteguard.core.brute_force import BruteForceGuard
from bruteguard.core.config import Settings, settings
from bruteguard.core.exception_handlers import setup_exception_handlers
from bruteguard.core.fail_policies import resolve_fail_policy
from bruteguard.core.logging import configure_logging
from bruteguard.core.middleware import request_id_middleware
from bruteguard.schemas.policy import BrutePolicy


def build_guard_from_settings(
    app_settings: Settings | None = None,
    *,
    store_factory: StoreFactory | None = None,
) -> BruteForceGuard:
    """Build the demo guard from configuration.

    Args:
        app_settings: Settings to read; defaults to the global settings.
        store_factory: Overrides the configured store backend (tests).

    Raises:
        ConfigurationAppError: For unknown store backends or fail policies.
    """
    cfg = app_settings or settings
    return BruteForceGuard(
        cfg.app.guard_name,
        BrutePolicy.from_settings(cfg.brute),
        store_factory or create_store_factory(cfg.store),
        fail_callback=resolve_fail_policy(cfg.brute.fail_policy),
        ignore_ip=cfg.brute.ignore_ip,
    )


def create_app(guard: BruteForceGuard | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        guard: Pre-built guard; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    guard = guard or build_guard_from_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await guard.close()

    app = FastAPI(
        title="bruteguard",
        description=(
            "Progressive-delay brute-force protection for FastAPI endpoints. "
            "The demo login endpoint allows a few free attempts, then enforces "
            "escalating lockouts answered with 429 and Retry-After."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )
    app.state.brute_guard = guard

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(build_auth_router(guard), prefix="/v1")
    app.include_router(health_router)

    return app
