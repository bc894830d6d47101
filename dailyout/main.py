import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from dailyout.api import auth, challenges, complete, health, journal, metrics, progress, realtime, today, wins
from dailyout.core.config import Settings, validate_config
from dailyout.core.container import Services, build_services
from dailyout.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from dailyout.core.logging import configure_logging
from dailyout.core.middleware.metrics import MetricsMiddleware
from dailyout.core.middleware.request_id import RequestIdMiddleware

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

logger = logging.getLogger("dailyout")


def create_app(settings: Optional[Settings] = None, *, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI app around an explicit Services container.

    Tests pass a pre-built `services` (frozen clock, seeded RNG, temp database);
    otherwise everything is built from `settings`.
    """
    if services is not None:
        settings = services.settings
    settings = settings or Settings()

    configure_logging(settings.ENV)
    validate_config(settings)

    owns_services = services is None
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting dailyout backend",
            extra={"env": settings.ENV, "day_policy": services.clock.tz_label},
        )
        services.db.create_all()
        if services.hub is not None:
            services.hub.bind_loop(asyncio.get_running_loop())
        try:
            yield
        finally:
            if services.hub is not None:
                services.hub.bind_loop(None)
            if owns_services:
                services.db.dispose()
            logger.info("Stopping dailyout backend")

    app = FastAPI(title="dailyout", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(today.router)
    app.include_router(complete.router)
    app.include_router(progress.router)
    app.include_router(challenges.router)
    app.include_router(wins.router)
    app.include_router(journal.router)
    app.include_router(auth.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(realtime.router, tags=["realtime"])

    return app


app = create_app()
