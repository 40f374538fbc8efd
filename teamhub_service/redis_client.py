"""Redis connection used to relay change events between service instances."""

from __future__ import annotations

from typing import Optional

import structlog
from redis.asyncio import Redis

from .config import get_settings

logger = structlog.get_logger(__name__)

redis_client: Optional[Redis] = None


async def init_redis() -> Optional[Redis]:
    global redis_client

    settings = get_settings()
    if not settings.TEAMHUB_REDIS_URL:
        logger.info("teamhub_redis_disabled")
        return None

    try:
        redis_client = Redis.from_url(
            settings.TEAMHUB_REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )
        await redis_client.ping()
        logger.info("teamhub_redis_connected")
    except Exception as exc:
        logger.error("teamhub_redis_connection_failed", error=str(exc))
        redis_client = None
    return redis_client


async def close_redis() -> None:
    global redis_client

    if redis_client is None:
        return

    try:
        await redis_client.aclose()
        logger.info("teamhub_redis_closed")
    except Exception as exc:
        logger.warning("teamhub_redis_close_failed", error=str(exc))
    finally:
        redis_client = None
