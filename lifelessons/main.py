import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

# Load env from the working directory .env (pydantic-settings reads it too)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from lifelessons.core.config import Settings, settings as default_settings, validate_config
from lifelessons.core.database import StoreContext
from lifelessons.core.logging import configure_logging
from lifelessons.core.middleware.request_id import RequestIdMiddleware
from lifelessons.core.validation import validate_env
from lifelessons.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from lifelessons.api import admin, billing, comments, favorites, health, lessons, reports, users
from lifelessons.features.billing.provider import PaymentProvider

logger = logging.getLogger("lifelessons")


def build_provider(cfg: Settings) -> Optional[PaymentProvider]:
    """Stripe provider when STRIPE_SECRET_KEY is set; None disables billing routes (503)."""
    if not cfg.billing_enabled:
        logger.warning("Billing disabled: STRIPE_SECRET_KEY not set")
        return None
    from lifelessons.features.billing.stripe_provider import StripeProvider
    return StripeProvider(settings=cfg)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: StoreContext = app.state.store
    cfg: Settings = app.state.settings
    logger.info("Starting Life Lessons backend...")

    connect_task = None
    if not store.ready:
        # Serve immediately; store-bound routes answer 503 until this finishes
        connect_task = asyncio.create_task(
            store.start(
                attempts=cfg.STORE_CONNECT_ATTEMPTS,
                backoff_seconds=cfg.STORE_CONNECT_BACKOFF_SECONDS,
            )
        )
    app.state.store_connect_task = connect_task
    try:
        yield
    finally:
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
            try:
                await connect_task
            except asyncio.CancelledError:
                pass
        if app.state.owns_store:
            store.close()
        logger.info("Stopping Life Lessons backend...")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[StoreContext] = None,
    provider: Optional[PaymentProvider] = None,
) -> FastAPI:
    """
    Build the application.

    The store context and payment provider are created here (or injected by
    tests) and exposed to handlers through app.state.
    """
    cfg = settings or default_settings
    configure_logging(cfg.ENV)
    validate_env(settings_obj=cfg)
    validate_config(settings_obj=cfg)

    app = FastAPI(title="Life Lessons - Backend", lifespan=lifespan)
    app.state.settings = cfg
    app.state.owns_store = store is None
    app.state.store = store or StoreContext(cfg.DATABASE_URL)
    app.state.provider = provider if provider is not None else build_provider(cfg)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(billing.router)
    app.include_router(users.router)
    app.include_router(lessons.router)
    app.include_router(lessons.home_router)
    app.include_router(favorites.router)
    app.include_router(comments.router)
    app.include_router(reports.router)
    app.include_router(admin.router)

    return app


app = create_app()
