from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from core.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SEC

logger = logging.getLogger("practice_engine.ratelimit")


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_sec: int = 0
    current_requests: int = 0
    max_requests: int = 0


class RateLimiter:
    """
    Fixed-window request counter keyed by user id.

    Owned by whoever constructs it (one per engine deployment or per test);
    there is no module-level bucket map. ``close()`` drops every bucket and
    further checks are allowed without counting.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_sec: float = RATE_LIMIT_WINDOW_SEC,
        clock: Callable[[], float] = time.monotonic,
        max_buckets: int = 10000,
    ):
        self.max_requests = max(1, int(max_requests))
        self.window_sec = max(0.001, float(window_sec))
        self._clock = clock
        self._max_buckets = max(1, int(max_buckets))
        self._lock = asyncio.Lock()
        self._buckets: dict[str, dict[str, float]] = {}
        self._closed = False

    async def check(self, identity: str | None) -> RateLimitDecision:
        key = str(identity or "guest")
        now_ts = float(self._clock())

        async with self._lock:
            if self._closed:
                return RateLimitDecision(allowed=True, max_requests=self.max_requests)

            bucket = self._buckets.get(key)
            if bucket is None:
                self._buckets[key] = {"window_start": now_ts, "count": 1}
                self._evict_stale(now_ts)
                return RateLimitDecision(allowed=True, current_requests=1, max_requests=self.max_requests)

            window_start = float(bucket.get("window_start") or now_ts)
            elapsed = now_ts - window_start
            if elapsed >= self.window_sec:
                bucket["window_start"] = now_ts
                bucket["count"] = 1
                return RateLimitDecision(allowed=True, current_requests=1, max_requests=self.max_requests)

            count = int(bucket.get("count") or 0)
            if count >= self.max_requests:
                retry_after = max(1, int(self.window_sec - elapsed))
                logger.info("rate limited | identity=%s retry_after=%s", key, retry_after)
                return RateLimitDecision(
                    allowed=False,
                    retry_after_sec=retry_after,
                    current_requests=count,
                    max_requests=self.max_requests,
                )

            bucket["count"] = count + 1
            return RateLimitDecision(allowed=True, current_requests=count + 1, max_requests=self.max_requests)

    def _evict_stale(self, now_ts: float) -> None:
        if len(self._buckets) <= self._max_buckets:
            return
        stale_keys = [
            key
            for key, value in self._buckets.items()
            if now_ts - float((value or {}).get("window_start") or now_ts) > (self.window_sec * 2)
        ]
        for key in stale_keys:
            self._buckets.pop(key, None)

    def reset(self, identity: str | None = None) -> None:
        if identity is None:
            self._buckets.clear()
            return
        self._buckets.pop(str(identity), None)

    def close(self) -> None:
        self._closed = True
        self._buckets.clear()

    @property
    def closed(self) -> bool:
        return self._closed
