"""Redis client for processing status events."""

import json
import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime

import redis as sync_redis
import redis.asyncio as aioredis

from legacylens.core.config import settings

logger = logging.getLogger(__name__)

# Async Redis pool for FastAPI
async_redis_pool = aioredis.ConnectionPool.from_url(
    str(settings.redis_url),
    decode_responses=True,
)

# Sync Redis pool for Celery workers and sync endpoints
sync_redis_pool = sync_redis.ConnectionPool.from_url(
    str(settings.redis_url),
    decode_responses=True,
    max_connections=50,
)


@contextmanager
def get_sync_redis_context() -> Generator[sync_redis.Redis, None, None]:
    """Context manager for sync Redis client.

    Usage:
        with get_sync_redis_context() as redis_client:
            redis_client.set("key", "value")
    """
    client = sync_redis.Redis(connection_pool=sync_redis_pool)
    try:
        yield client
    finally:
        client.close()


async def close_redis_pool() -> None:
    """Close Redis connection pools on shutdown."""
    await async_redis_pool.disconnect()
    sync_redis_pool.disconnect()


# =============================================================================
# File status events
# =============================================================================

FILE_STATUS_PREFIX = "file:status:"
FILE_STATE_PREFIX = "file:state:"
FILE_STATE_TTL = 3600  # 1 hour


def get_file_status_channel(file_id: str) -> str:
    """Get Redis pub/sub channel name for a file's status events."""
    return f"{FILE_STATUS_PREFIX}{file_id}"


def get_file_state_key(file_id: str) -> str:
    """Get Redis key holding the last published status of a file."""
    return f"{FILE_STATE_PREFIX}{file_id}"


def publish_file_status(
    file_id: str,
    status: str,
    error_message: str | None = None,
    analysis_id: str | None = None,
) -> None:
    """Publish a file status change and store it as the last known state.

    Late pollers read the stored state; subscribers get the pub/sub message.
    """
    payload_dict = {
        "file_id": file_id,
        "status": status,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if error_message is not None:
        payload_dict["error_message"] = error_message
    if analysis_id is not None:
        payload_dict["analysis_id"] = analysis_id

    payload = json.dumps(payload_dict)

    with get_sync_redis_context() as redis_client:
        redis_client.setex(get_file_state_key(file_id), FILE_STATE_TTL, payload)
        redis_client.publish(get_file_status_channel(file_id), payload)
        logger.debug(f"Published status for file {file_id}: {status}")


async def ping_redis() -> bool:
    """Check Redis connectivity."""
    try:
        async with aioredis.Redis(connection_pool=async_redis_pool) as client:
            return bool(await client.ping())
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        return False
