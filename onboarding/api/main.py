"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance and wires the
long-lived adapters in the lifespan handler.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from onboarding.adapters.email import BackgroundNotificationDispatcher, ConsoleEmailSender, HttpEmailSender
from onboarding.adapters.identity import InMemoryIdentityProvider, KeycloakIdentityProvider
from onboarding.adapters.repository import (
    InMemoryCustomerRepository,
    InMemoryTokenRepository,
    PostgresCustomerRepository,
    PostgresTokenRepository,
    run_migrations,
)
from onboarding.api.v1 import router as v1_router
from onboarding.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Customer onboarding API v1 - Register customers and confirm their email",
    },
]


def _build_stores(app: FastAPI, settings: Settings) -> None:
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory stores; data is lost on restart")
        app.state.pool = None
        app.state.customer_repository = InMemoryCustomerRepository()
        app.state.token_repository = InMemoryTokenRepository()
        return

    logger.info("Connecting to database...")
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    logger.info("Running database migrations...")
    run_migrations(pool)

    app.state.pool = pool
    app.state.customer_repository = PostgresCustomerRepository(pool)
    app.state.token_repository = PostgresTokenRepository(pool)


def _build_collaborators(app: FastAPI, settings: Settings) -> None:
    if settings.identity_backend == "memory":
        app.state.identity_provider = InMemoryIdentityProvider()
    else:
        app.state.identity_provider = KeycloakIdentityProvider.from_settings(settings)

    if settings.email_backend == "http":
        sender = HttpEmailSender.from_settings(settings)
    else:
        sender = ConsoleEmailSender()
    app.state.email_sender = sender
    app.state.notifications = BackgroundNotificationDispatcher(
        sender, max_workers=settings.notification_workers
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates stores (connection pool + migrations for PostgreSQL)
    - Creates the identity provider client and the notification dispatcher
    - Drains queued emails and closes clients and the pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    _build_stores(app, settings)
    _build_collaborators(app, settings)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    app.state.notifications.shutdown(wait=True)
    app.state.identity_provider.close()
    if isinstance(app.state.email_sender, HttpEmailSender):
        app.state.email_sender.close()
    if app.state.pool is not None:
        app.state.pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="customer-onboarding",
    description="Customer onboarding API - registration saga and email confirmation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint with store validation.

    Returns 200 when the application and its database are reachable,
    503 otherwise.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        try:
            with pool.connection() as conn:
                conn.execute("SELECT 1")
        except Exception as e:
            logger.error("Health check failed: %s", e)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy"},
            )

    return JSONResponse(content={"status": "healthy"})
