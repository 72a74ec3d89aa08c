"""
Health check endpoints for monitoring system status.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.cache import CacheBackend
from app.db import get_session
from app.deps import get_cache

router = APIRouter(prefix="/health", tags=["health"])

API_VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_database_health() -> Dict[str, str]:
    """
    Check database connectivity and health.

    Returns:
        Dict with status and optional error details
    """
    try:
        async with get_session() as db:
            result = (await db.execute(text("SELECT 1"))).scalar()
            if result == 1:
                return {"status": "ok"}
            return {"status": "down", "error": "Unexpected query result"}
    except SQLAlchemyError as e:
        return {"status": "down", "error": f"Database error: {str(e)}"}
    except OSError as e:
        return {"status": "down", "error": f"Connection error: {str(e)}"}


async def check_cache_health(cache: CacheBackend) -> Dict[str, str]:
    """
    Check cache connectivity and health.

    Returns:
        Dict with status and optional error details
    """
    if not cache.enabled:
        return {"status": "disabled"}

    if not cache.is_available:
        return {"status": "down", "error": "Cache client not available"}

    if await cache.ping():
        return {"status": "ok"}
    return {"status": "down", "error": "Cache ping failed"}


@router.get("/")
async def health_check(cache: CacheBackend = Depends(get_cache)) -> Dict[str, Any]:
    """
    Comprehensive health check endpoint.

    Returns:
        Dict containing:
        - status: "ok" | "degraded" | "down"
        - db: database health status
        - cache: cache health status
        - version: API version
        - timestamp: current UTC timestamp
    """
    db_health = await check_database_health()
    cache_health = await check_cache_health(cache)

    overall_status = "ok"
    if db_health["status"] == "down":
        overall_status = "down"  # the store has no fallback
    elif cache_health["status"] == "down":
        overall_status = "degraded"  # reads fall through to the store

    return {
        "status": overall_status,
        "db": db_health,
        "cache": cache_health,
        "version": API_VERSION,
        "timestamp": _now(),
    }


@router.get("/db")
async def database_health() -> Dict[str, Any]:
    """
    Database-specific health check with table row counts.
    """
    health_status = await check_database_health()
    if health_status["status"] != "ok":
        return health_status

    try:
        async with get_session() as db:
            tables = {}
            for table in ("users", "posts", "comments", "post_likes", "comment_likes"):
                tables[table] = (await db.execute(text(f"SELECT COUNT(*) FROM {table}"))).scalar()

            health_status.update({"tables": tables, "timestamp": _now()})
    except SQLAlchemyError as e:
        health_status["error"] = f"Extended check failed: {str(e)}"

    return health_status


@router.get("/cache")
async def cache_health(cache: CacheBackend = Depends(get_cache)) -> Dict[str, Any]:
    """
    Cache-specific health check exercising set, get and delete.
    """
    health_status = await check_cache_health(cache)

    if health_status["status"] == "ok":
        test_key = "health_check_test"
        test_value = "test_value"

        set_success = await cache.set(test_key, test_value, 60)
        retrieved_value = await cache.get(test_key)
        delete_success = await cache.delete(test_key)

        health_status.update({
            "operations": {
                "set": set_success,
                "get": retrieved_value == test_value,
                "delete": delete_success,
            },
            "timestamp": _now(),
        })

    return health_status
