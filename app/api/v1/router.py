"""API v1 router module."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.api.v1.geo_lookup import router as geo_lookup_router
from app.core.config import settings
from app.core.db import DatabaseNotInitializedError, session_scope

router = APIRouter(default_response_class=JSONResponse)

router.include_router(geo_lookup_router)


@router.get("/")
async def get_api_metadata() -> dict[str, str]:
    """
    Get API metadata.

    Returns information about this API and where its documentation lives.
    """
    return {
        "version": settings.version,
        "openapi_url": "/openapi.json",
        "documentation_url": "/docs",
        "api_status": "healthy",
        "implementation": settings.app_name,
    }


# Health check endpoints


@router.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint.

    Returns
    -------
        Dict containing health status information
    """
    return {
        "status": "healthy",
        "version": settings.version,
        "correlation_id": request.state.correlation_id,
    }


@router.get("/health/redis")
async def redis_health_check(request: Request) -> dict[str, str]:
    """
    Redis health check endpoint.

    Returns
    -------
        Dict containing Redis health status information
    """
    if settings.CACHE_BACKEND != "redis":
        return {
            "status": "disabled",
            "backend": settings.CACHE_BACKEND,
            "correlation_id": request.state.correlation_id,
        }

    redis = Redis.from_url(settings.REDIS_URL)
    try:
        await redis.ping()
        info = await redis.info()
        return {
            "status": "healthy",
            "redis_version": str(info["redis_version"]),
            "connected_clients": str(info["connected_clients"]),
            "used_memory_human": str(info["used_memory_human"]),
            "correlation_id": request.state.correlation_id,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "correlation_id": request.state.correlation_id,
        }
    finally:
        await redis.aclose()


@router.get("/health/db")
async def db_health_check(request: Request) -> dict[str, str]:
    """
    Location directory database health check endpoint.

    Returns
    -------
        Dict containing database health status information
    """
    try:
        async with session_scope() as session:
            result = await session.execute(text("SELECT version()"))
            version = result.scalar_one()
        return {
            "status": "healthy",
            "database": "postgresql",
            "version": str(version),
            "correlation_id": request.state.correlation_id,
        }
    except DatabaseNotInitializedError as e:
        return {
            "status": "disabled",
            "error": str(e),
            "correlation_id": request.state.correlation_id,
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "correlation_id": request.state.correlation_id,
        }
