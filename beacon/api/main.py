"""Beacon API - FastAPI Application."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from beacon import __version__
from beacon.api.dependencies import Runtime
from beacon.api.routers import hello_router, status_router, system_router
from beacon.config import BeaconSettings, get_settings
from beacon.heartbeat import (
    NotificationDispatcher,
    Notifier,
    PingHandler,
    StatusStore,
    SweepDriver,
    SweepScheduler,
    TransitionCoordinator,
    build_notifier,
    build_store,
)
from beacon.heartbeat.errors import AuthenticationError, UnknownEntityError

logger = structlog.get_logger(__name__)


def build_runtime(
    settings: BeaconSettings,
    store: StatusStore | None = None,
    notifier: Notifier | None = None,
    clock: Callable[[], float] = time.time,
) -> Runtime:
    """Wire store, notifier, handlers and scheduler from configuration."""
    store = store or build_store(settings)
    dispatcher = NotificationDispatcher(
        notifier or build_notifier(settings),
        timeout=settings.notify_timeout_seconds,
    )
    coordinator = TransitionCoordinator(store)
    names = settings.server_names

    ping_handler = PingHandler(names, coordinator, dispatcher, clock=clock)
    sweep_driver = SweepDriver(
        names,
        threshold_seconds=settings.alert_threshold_seconds,
        coordinator=coordinator,
        dispatcher=dispatcher,
        entity_timeout=settings.entity_timeout_seconds,
        clock=clock,
    )
    scheduler = (
        SweepScheduler(sweep_driver, interval_seconds=settings.sweep_interval_seconds)
        if settings.run_scheduler
        else None
    )

    return Runtime(
        settings=settings,
        store=store,
        dispatcher=dispatcher,
        coordinator=coordinator,
        ping_handler=ping_handler,
        sweep_driver=sweep_driver,
        scheduler=scheduler,
        clock=clock,
    )


def create_app(
    settings: BeaconSettings | None = None,
    store: StatusStore | None = None,
    notifier: Notifier | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration (read from the environment if omitted)
        store: Record store override, mainly for tests
        notifier: Notifier override, mainly for tests
        clock: Wall-clock source in seconds
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        runtime = build_runtime(settings, store=store, notifier=notifier, clock=clock)
        app.state.runtime = runtime

        if not settings.access_token:
            logger.warning("No access token configured; every ping will be rejected")
        if not settings.server_names:
            logger.warning("No servers configured; every ping will be rejected")

        if runtime.scheduler is not None:
            await runtime.scheduler.start()

        logger.info(
            "Beacon started",
            servers=settings.server_names,
            alert_threshold_seconds=settings.alert_threshold_seconds,
        )
        yield

        # Shutdown: no new passes, then finish writes, then deliver
        if runtime.scheduler is not None:
            await runtime.scheduler.stop(timeout=settings.drain_timeout_seconds)
        await runtime.coordinator.drain(timeout=settings.drain_timeout_seconds)
        await runtime.dispatcher.drain(timeout=settings.drain_timeout_seconds)
        await runtime.dispatcher.notifier.close()
        await runtime.store.close()
        logger.info("Beacon stopped")

    app = FastAPI(
        title=settings.title,
        description=settings.description,
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(request: Request, exc: AuthenticationError) -> PlainTextResponse:
        return PlainTextResponse(str(exc), status_code=401)

    @app.exception_handler(UnknownEntityError)
    async def unknown_entity_handler(request: Request, exc: UnknownEntityError) -> PlainTextResponse:
        logger.info("Rejected ping", entity=exc.name)
        return PlainTextResponse(f"Bad Request: {exc}", status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
        if exc.status_code == 404:
            return PlainTextResponse("Not found.", status_code=404)
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    # Include routers
    app.include_router(system_router, tags=["System"])
    app.include_router(hello_router, tags=["Hello"])
    app.include_router(status_router, tags=["Status"])

    return app


if __name__ == "__main__":
    import uvicorn

    from beacon.logconfig import configure_logging

    _settings = get_settings()
    configure_logging(_settings.log_level, json=_settings.log_json)
    uvicorn.run(
        create_app(_settings),
        host=_settings.host,
        port=_settings.port,
    )
