from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from bookledger.api.deps import get_current_user
from bookledger.core.config import settings
from bookledger.core.redis_client import get_redis
from bookledger.models.user import User
from fastapi import Depends, HTTPException

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(time.time())


def _window_key(scope: str, user_id: str, now: int, window_seconds: int) -> str:
    return f"rl:{scope}:{user_id}:{now // window_seconds}"


def rate_limiter(
    scope: str,
    *,
    limit: Optional[int] = None,
    window_seconds: Optional[int] = None,
) -> Callable[..., None]:
    """Per-user fixed-window limiter for write endpoints.

    Counts live in Redis (INCR, with the key expiring at the end of the
    window). Limits default to the ledger settings and are read per request.
    Without Redis the limiter lets every request through.
    """

    def _dep(user: User = Depends(get_current_user)) -> None:
        r = get_redis()
        if r is None:
            return

        max_hits = limit if limit is not None else settings.rate_limit_ledger_per_window
        window = window_seconds or settings.rate_limit_window_seconds
        now = _now()
        key = _window_key(scope, user.id, now, window)

        try:
            pipe = r.pipeline()
            pipe.incr(key)
            pipe.expire(key, window, nx=True)
            count = int(pipe.execute()[0])
        except Exception as exc:
            logger.warning("rate limiter skipped for %s: %s", scope, exc)
            return

        if count > max_hits:
            logger.info("rate limit hit: scope=%s user=%s count=%s", scope, user.id, count)
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please slow down.",
                headers={"Retry-After": str(max(1, window - (now % window)))},
            )

    return _dep
