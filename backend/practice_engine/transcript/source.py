from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Awaitable, Callable, Protocol

from practice_engine.errors import TranscriptionUnavailable
from practice_engine.transcript.models import TranscriptEvent

logger = logging.getLogger("practice_engine.transcript.source")

_END = object()


class TranscriptionSource(Protocol):
    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def events(self) -> AsyncIterator[TranscriptEvent]:
        ...


class QueueTranscriptionSource:
    """
    Adapts a callback-style recognizer (result / error / end callbacks) into
    an ordered async stream of ``TranscriptEvent``.

    Callbacks may fire from any thread; events are handed to the loop that
    called ``start()`` and come out of ``events()`` in arrival order.
    """

    def __init__(
        self,
        start_fn: Callable[[], Awaitable[None]] | None = None,
        stop_fn: Callable[[], Awaitable[None]] | None = None,
    ):
        self._start_fn = start_fn
        self._stop_fn = stop_fn
        self._queue: asyncio.Queue | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread_id: int | None = None
        self._running = False
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._loop_thread_id = threading.get_ident()
        self._queue = asyncio.Queue()
        self.last_error = None

        if self._start_fn is not None:
            try:
                await self._start_fn()
            except TranscriptionUnavailable:
                raise
            except Exception as exc:
                raise TranscriptionUnavailable(str(exc) or exc.__class__.__name__) from exc

        self._running = True
        logger.info("transcription source started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._stop_fn is not None:
            try:
                await self._stop_fn()
            except Exception as exc:
                logger.warning("transcription stop failed | err=%s", exc)
        self._put(_END)
        logger.info("transcription source stopped")

    # -------------------------
    # RECOGNIZER CALLBACKS
    # -------------------------

    def on_result(self, text: str, is_final: bool, confidence: float | None = None) -> None:
        if not self._running:
            return
        self._put(TranscriptEvent(text=str(text or ""), is_final=bool(is_final), confidence=confidence))

    def on_error(self, error: str) -> None:
        self.last_error = str(error or "unknown")
        logger.warning("transcription error | err=%s", self.last_error)
        self._running = False
        self._put(_END)

    def on_end(self) -> None:
        self._running = False
        self._put(_END)

    def _put(self, item) -> None:
        if self._queue is None or self._loop is None:
            return
        if threading.get_ident() == self._loop_thread_id:
            self._queue.put_nowait(item)
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        if self._queue is None:
            return
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item
