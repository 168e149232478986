from __future__ import annotations

import json
import logging
from typing import Any, Callable

from bookledger.core.config import settings
from bookledger.core.redis_client import get_redis

logger = logging.getLogger(__name__)

BOOK_LIST_KEY = "catalog:books:v1"


def get_book_list_cached(load: Callable[[], list[dict[str, Any]]]) -> list[dict[str, Any]]:
    """Return the serialized book listing.

    Behavior:
    - Reads from Redis first.
    - Calls ``load`` on a miss (or when Redis is down) and writes the
      result back with a TTL.
    - Redis errors never fail the request; they degrade to ``load``.
    """
    r = get_redis()
    if r is not None:
        try:
            raw = r.get(BOOK_LIST_KEY)
        except Exception as exc:
            logger.warning("catalog cache read failed: %s", exc)
            raw = None
        if raw:
            try:
                cached = json.loads(raw)
                if isinstance(cached, list):
                    return cached
            except json.JSONDecodeError:
                logger.warning("discarding malformed catalog cache entry")

    books = load()

    if r is not None:
        try:
            r.setex(BOOK_LIST_KEY, int(settings.catalog_cache_ttl_secs), json.dumps(books))
        except Exception as exc:
            logger.warning("catalog cache write failed: %s", exc)

    return books


def invalidate_book_list() -> None:
    r = get_redis()
    if r is None:
        return
    try:
        r.delete(BOOK_LIST_KEY)
    except Exception as exc:
        # A stale listing expires on its own after the TTL.
        logger.warning("catalog cache invalidation failed: %s", exc)
