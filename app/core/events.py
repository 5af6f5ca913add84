"""Application startup and shutdown events."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import Counter, Histogram

from app.api.v1.geo_lookup.services import create_geo_lookup_service
from app.core.config import settings
from app.core.db import dispose_engine
from app.core.logging import configure_logging, get_logger

# Prometheus metrics
REQUESTS_TOTAL = Counter(
    "app_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "app_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

REQUEST_DURATION_SECONDS = Histogram(
    "app_http_request_duration_seconds",
    "HTTP request duration in seconds",
    labelnames=["method", "path"],
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the lookup service on startup and release it on shutdown."""
    configure_logging(
        testing=os.getenv("TESTING") == "true",
        level=settings.LOG_LEVEL,
        json_logs=settings.JSON_LOGS,
    )

    app.state.geo_lookup_service = create_geo_lookup_service(settings)
    logger.info(
        "app_startup",
        cache_backend=settings.CACHE_BACKEND,
        primary_geocoder=settings.has_primary_geocoder,
    )

    try:
        yield
    finally:
        try:
            await app.state.geo_lookup_service.close()
        except Exception as e:
            logger.error("geo_lookup_service_close_failed", error=str(e))
        await dispose_engine()
        logger.info("app_shutdown")
