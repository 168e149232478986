from __future__ import annotations

import logging
from functools import lru_cache

import redis
from bookledger.core.config import settings
from redis import Redis

logger = logging.getLogger(__name__)


@lru_cache
def get_redis() -> Redis | None:
    """Shared client for the catalog cache and the rate limiter, or None.

    Redis is optional: when the first ping fails the process runs without
    it until restart.
    """
    try:
        client: Redis = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
        client.ping()
        return client
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Redis unavailable; catalog cache and rate limiting disabled: %s", exc)
        return None
