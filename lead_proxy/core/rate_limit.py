"""
Rate limiting module for IP-based request throttling.
Fixed-window counters kept in a shared key-value store.

The counter is a plain read-modify-write without locking: concurrent requests
from one client may under-count, never over-reject. Store failures fail open.
"""

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from lead_proxy.config import logger
from lead_proxy.core.kv_store import KeyValueStore, get_store

__all__ = ["RateLimiter", "RateLimitStatus", "get_rate_limiter", "KEY_PREFIX"]

KEY_PREFIX = "rl:"


@dataclass
class RateLimitStatus:
    exceeded: bool
    count: int
    limit: int
    reset_at: float
    retry_after: int = 1

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()

    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_at_iso(),
        }


class RateLimiter:
    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._clock = clock

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            self._store = get_store()
        return self._store

    @staticmethod
    def _load_state(raw: Any, now: float, window_seconds: int) -> Dict[str, float]:
        fresh = {"count": 0, "reset_at": now + window_seconds}
        if not isinstance(raw, dict):
            return fresh
        try:
            return {"count": int(raw["count"]), "reset_at": float(raw["reset_at"])}
        except (KeyError, TypeError, ValueError):
            return fresh

    async def hit(
        self, client_id: str, max_requests: int, window_seconds: int
    ) -> RateLimitStatus:
        """
        Count one request for ``client_id`` and report whether it is over the limit.

        Args:
            client_id: Identifier of the caller (client IP or "unknown")
            max_requests: Requests allowed per window
            window_seconds: Length of the fixed window

        Returns:
            RateLimitStatus for the current window. When the store is
            unavailable the request is let through (exceeded=False).
        """
        key = f"{KEY_PREFIX}{client_id}"
        now = self._clock()

        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.warning(
                "Rate limit store read failed, allowing request",
                extra={"client_id": client_id, "error": str(e)},
            )
            return RateLimitStatus(
                exceeded=False,
                count=0,
                limit=max_requests,
                reset_at=now + window_seconds,
                retry_after=max(1, window_seconds),
            )

        state = self._load_state(raw, now, window_seconds)

        if now > state["reset_at"]:
            state = {"count": 0, "reset_at": now + window_seconds}

        state["count"] += 1

        ttl = max(1, math.ceil(state["reset_at"] - now))
        try:
            await self.store.put(key, state, ttl)
        except Exception as e:
            logger.warning(
                "Rate limit store write failed, allowing request",
                extra={"client_id": client_id, "error": str(e)},
            )
            return RateLimitStatus(
                exceeded=False,
                count=int(state["count"]),
                limit=max_requests,
                reset_at=state["reset_at"],
                retry_after=ttl,
            )

        status = RateLimitStatus(
            exceeded=state["count"] > max_requests,
            count=int(state["count"]),
            limit=max_requests,
            reset_at=state["reset_at"],
            retry_after=ttl,
        )

        logger.debug(
            "Rate limit check",
            extra={
                "client_id": client_id,
                "count": status.count,
                "limit": max_requests,
                "exceeded": status.exceeded,
                "ttl": ttl,
            },
        )
        return status

    async def check(
        self, client_id: str, max_requests: int, window_seconds: int
    ) -> bool:
        """Count one request and return True when the client is over the limit."""
        status = await self.hit(client_id, max_requests, window_seconds)
        return status.exceeded


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter

    if _rate_limiter is None:
        _rate_limiter = RateLimiter()

    return _rate_limiter
