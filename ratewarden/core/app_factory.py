"""Application factory.

Builds the one quota store per process and hands it, by reference, to the
admission layer. The sweeper shares the app lifespan: it starts on startup
and is stopped on shutdown, after which the store is closed.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from ratewarden.adapters.rate_limit import (
    QuotaConfig,
    QuotaSweeper,
    ShardedQuotaStore,
    build_default_registry,
)
from ratewarden.adapters.rate_limit.sweeper import default_sweep_interval
from ratewarden.api.routes import admin_router, health_router
from ratewarden.core.config import Settings, settings
from ratewarden.core.exception_handlers import setup_exception_handlers
from ratewarden.core.logging import configure_logging
from ratewarden.core.middleware import request_id_middleware
from ratewarden.core.rate_limit import AdmissionMiddleware


def build_quota_store(
    app_settings: Settings,
    *,
    clock: Callable[[], float] = time.time,
) -> ShardedQuotaStore:
    """Create the store with the shipped policy table and configured overrides."""
    rl = app_settings.rate_limit
    registry = build_default_registry(
        default=QuotaConfig(
            max_requests=rl.default_max_requests,
            window_seconds=rl.default_window_seconds,
        ),
        overrides=rl.overrides,
    )
    return ShardedQuotaStore(registry=registry, shard_count=rl.shard_count, clock=clock)


def create_app(
    app_settings: Settings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build with; the global ones if omitted.
        clock: Time source for the quota store.

    Returns:
        Configured app. ``app.state`` holds ``quota_store``, ``sweeper``,
        ``admission`` and ``settings``.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    store = build_quota_store(cfg, clock=clock)
    sweeper = QuotaSweeper(
        store,
        interval_seconds=cfg.rate_limit.sweep_interval_seconds
        or default_sweep_interval(store.registry.smallest_window()),
    )
    admission = AdmissionMiddleware.from_settings(store, cfg.rate_limit)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        sweeper.start()
        try:
            yield
        finally:
            sweeper.stop()
            store.close()

    app = FastAPI(
        title="ratewarden",
        description=(
            "Per-identity, per-endpoint admission control. Every rate limited "
            "response carries X-RateLimit-* headers; rejections are HTTP 429 "
            "with Retry-After."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.quota_store = store
    app.state.sweeper = sweeper
    app.state.admission = admission

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    return app
