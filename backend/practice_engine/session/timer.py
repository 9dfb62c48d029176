from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger("practice_engine.session.timer")


class CountdownTimer:
    """
    Single-shot countdown on the running loop.
    ``cancel()`` is safe to call any number of times, armed or not.
    """

    def __init__(self):
        self._handle: asyncio.TimerHandle | None = None
        self._deadline: float | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def start(self, duration_sec: float, on_expire: Callable[[], None]) -> float:
        self.cancel()
        loop = asyncio.get_running_loop()
        delay = max(0.0, float(duration_sec))
        self._deadline = loop.time() + delay

        def _fire():
            self._handle = None
            self._deadline = None
            logger.info("countdown expired | delay=%s", delay)
            on_expire()

        self._handle = loop.call_later(delay, _fire)
        return self._deadline

    def remaining(self) -> float:
        if self._deadline is None:
            return 0.0
        loop = asyncio.get_running_loop()
        return max(0.0, self._deadline - loop.time())

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        self._deadline = None
        if handle is not None:
            handle.cancel()
