"""Health check endpoints."""

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool

from legacylens.core.database import sync_engine
from legacylens.core.redis import ping_redis
from legacylens.services.llm_gateway import get_llm_gateway

logger = logging.getLogger(__name__)

router = APIRouter()


def _ping_database() -> bool:
    try:
        with sync_engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False


@router.get("")
async def health_check() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness_check(response: Response) -> dict:
    """Readiness check - verifies dependencies are available.

    The AI backend is optional: without it analyses run on heuristics, so
    it is reported but does not affect readiness.
    """
    database_ok = await run_in_threadpool(_ping_database)
    redis_ok = await ping_redis()

    try:
        ai_available = await get_llm_gateway().is_available()
    except Exception as e:
        logger.warning(f"AI availability check failed: {e}")
        ai_available = False

    ready = database_ok and redis_ok
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "degraded",
        "database": database_ok,
        "redis": redis_ok,
        "ai_available": ai_available,
    }
