from __future__ import annotations

from typing import Awaitable, Callable, Protocol

from core.logger import log_event
from practice_engine.scoring import ScoreResult


class CompletionSink(Protocol):
    async def emit(self, result: ScoreResult, timestamp: float, session_id: str) -> None:
        ...


class LoggingCompletionSink:
    async def emit(self, result: ScoreResult, timestamp: float, session_id: str) -> None:
        log_event(
            "session",
            "session_completed",
            session_id,
            timestamp=timestamp,
            overall_score=result.overall_score,
            categories=result.categories.to_dict(),
        )


class CallbackCompletionSink:
    def __init__(self, callback: Callable[[ScoreResult, float, str], Awaitable[None]]):
        self._callback = callback

    async def emit(self, result: ScoreResult, timestamp: float, session_id: str) -> None:
        await self._callback(result, timestamp, session_id)
