from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from core.config import SESSION_CREDIT_COST, SESSION_DURATION_SEC, SESSION_FEATURE_KEY
from core.logger import log_event
from practice_engine.entitlement import EntitlementGate, ReservationFailed, Reserved, denial_reason
from practice_engine.generation import ResponseGenerator
from practice_engine.metrics import increment_metric
from practice_engine.models import Message, Scenario, Sender
from practice_engine.ratelimit import RateLimiter
from practice_engine.scoring import ScoreResult, ScoringEngine
from practice_engine.session.sink import CompletionSink, LoggingCompletionSink
from practice_engine.session.state import (
    AwaitingEntitlement,
    Blocked,
    Complete,
    Idle,
    Recording,
    Scoring,
    SessionState,
    state_to_dict,
)
from practice_engine.session.timer import CountdownTimer
from practice_engine.transcript import (
    SessionTranscript,
    TranscriptEvent,
    TranscriptionAggregator,
    TranscriptionSource,
)

logger = logging.getLogger("practice_engine.session")


@dataclass(frozen=True)
class SessionNotification:
    kind: str
    session_id: str
    payload: dict = field(default_factory=dict)


SessionListener = Callable[[SessionNotification], None]


class SessionStateMachine:
    """
    One practice round, from entitlement check to score.

    Idle -> AwaitingEntitlement -> Recording -> Scoring -> Complete,
    with Blocked reachable from AwaitingEntitlement (denial) or from the
    transcription start. Only one of stop() and the countdown can move a
    Recording session into Scoring.
    """

    def __init__(
        self,
        gate: EntitlementGate,
        generator: ResponseGenerator | None = None,
        scoring: ScoringEngine | None = None,
        source: TranscriptionSource | None = None,
        sink: CompletionSink | None = None,
        rate_limiter: RateLimiter | None = None,
        user_id: str | None = None,
        guest: bool = False,
        duration_sec: float = SESSION_DURATION_SEC,
        feature_key: str = SESSION_FEATURE_KEY,
        cost: int = SESSION_CREDIT_COST,
        respond_to_transcript: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.gate = gate
        self.generator = generator or ResponseGenerator()
        self.scoring = scoring or ScoringEngine()
        self.source = source
        self.sink = sink or LoggingCompletionSink()
        self.rate_limiter = rate_limiter
        self.user_id = user_id
        self.guest = bool(guest)
        self.duration_sec = max(0.0, float(duration_sec))
        self.feature_key = feature_key
        self.cost = int(cost)
        self.respond_to_transcript = bool(respond_to_transcript)
        self._clock = clock

        self._session_id = str(uuid.uuid4())
        self._state: SessionState = Idle()
        self._scenario: Scenario | None = None
        self._messages: list[Message] = []
        self._aggregator = TranscriptionAggregator()
        self._result: ScoreResult | None = None
        self._reservation: Reserved | None = None

        self._timer = CountdownTimer()
        self._generation_lock = asyncio.Lock()
        self._pump_task: asyncio.Task | None = None
        self._source_running = False
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[SessionListener] = []

    # -------------------------
    # READ API
    # -------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scenario(self) -> Scenario | None:
        return self._scenario

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def transcript(self) -> SessionTranscript:
        return self._aggregator.snapshot()

    @property
    def result(self) -> ScoreResult | None:
        return self._result

    # -------------------------
    # SUBSCRIPTIONS
    # -------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, kind: str, payload: dict[str, Any]) -> None:
        notification = SessionNotification(kind=kind, session_id=self._session_id, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as exc:
                logger.warning("listener failed | session_id=%s kind=%s err=%s", self._session_id, kind, exc)

    def _set_state(self, state: SessionState) -> None:
        previous = self._state
        self._state = state
        logger.info(
            "state transition | session_id=%s from=%s to=%s",
            self._session_id,
            previous.phase.value,
            state.phase.value,
        )
        self._notify("state", state_to_dict(state))

    # -------------------------
    # LIFECYCLE
    # -------------------------

    async def start(self, scenario: Scenario | dict, *, text_only: bool = False) -> SessionState:
        if isinstance(self._state, (AwaitingEntitlement, Recording, Scoring, Complete)):
            logger.info("start ignored | session_id=%s phase=%s", self._session_id, self._state.phase.value)
            return self._state

        if not isinstance(scenario, Scenario):
            scenario = Scenario.from_dict(scenario)
        self._scenario = scenario
        session_id = self._session_id

        if self._reservation is None:
            self._set_state(AwaitingEntitlement())
            try:
                outcome = await self.gate.check_and_reserve(
                    self.user_id,
                    self.feature_key,
                    self.cost,
                    guest=self.guest,
                    session_id=session_id,
                )
            except Exception as exc:
                logger.error("entitlement check failed | session_id=%s err=%s", session_id, exc)
                outcome = ReservationFailed(error=str(exc))
            if session_id != self._session_id:
                if isinstance(outcome, Reserved) and outcome.metered:
                    logger.warning(
                        "reservation discarded after restart | session_id=%s user_id=%s cost=%s remaining=%s",
                        session_id,
                        self.user_id,
                        self.cost,
                        outcome.remaining,
                    )
                else:
                    logger.info("entitlement result dropped after restart | session_id=%s", session_id)
                return self._state

            if not isinstance(outcome, Reserved):
                reason = denial_reason(outcome) or "entitlement_denied"
                increment_metric("sessions_blocked")
                self._set_state(Blocked(reason=reason, detail=_describe(outcome)))
                return self._state
            self._reservation = outcome
        else:
            logger.info("reusing reservation | session_id=%s", session_id)

        effective_text_only = bool(text_only) or self.source is None
        if not effective_text_only:
            try:
                await self.source.start()
            except Exception as exc:
                increment_metric("sessions_blocked")
                logger.warning("transcription unavailable | session_id=%s err=%s", session_id, exc)
                self._set_state(Blocked(reason="transcription_unavailable", detail=str(exc)))
                return self._state
            if session_id != self._session_id:
                await self._stop_source()
                return self._state
            self._source_running = True
            self._pump_task = asyncio.create_task(self._pump(session_id))

        self._aggregator.restart()
        self._timer.start(self.duration_sec, self._on_deadline)
        increment_metric("sessions_started")
        log_event(
            "session",
            "recording_started",
            session_id,
            text_only=effective_text_only,
            scenario=scenario.to_dict(),
            metered=self._reservation.metered,
        )
        self._set_state(Recording(deadline=self._clock() + self.duration_sec, text_only=effective_text_only))
        self._append_message(Sender.COUNTERPART, self.generator.scenario_intro(scenario))
        return self._state

    async def stop(self) -> ScoreResult | None:
        if not self._enter_scoring("manual_stop"):
            return self._result
        result = self._score_and_complete()
        await self._stop_source()
        await self._emit_completion(result)
        return result

    def _on_deadline(self) -> None:
        if not self._enter_scoring("timeout"):
            return
        increment_metric("session_timeouts")
        result = self._score_and_complete()
        self._spawn(self._after_timeout(result))

    async def _after_timeout(self, result: ScoreResult) -> None:
        await self._stop_source()
        await self._emit_completion(result)

    def _enter_scoring(self, trigger: str) -> bool:
        if not isinstance(self._state, Recording):
            logger.info("scoring skipped | session_id=%s trigger=%s phase=%s", self._session_id, trigger, self._state.phase.value)
            return False
        self._timer.cancel()
        logger.info("recording ended | session_id=%s trigger=%s", self._session_id, trigger)
        self._set_state(Scoring())
        return True

    def _score_and_complete(self) -> ScoreResult:
        transcript = self._aggregator.finalize()
        result = self.scoring.score(transcript, self._scenario)
        self._result = result
        increment_metric("sessions_completed")
        self._notify("score", result.to_dict())
        self._set_state(Complete(result=result))
        return result

    async def _emit_completion(self, result: ScoreResult) -> None:
        try:
            await self.sink.emit(result, self._clock(), self._session_id)
        except Exception as exc:
            logger.error("completion sink failed | session_id=%s err=%s", self._session_id, exc)

    def restart_capture(self) -> bool:
        if not isinstance(self._state, Recording):
            return False
        self._aggregator.restart()
        self._notify("transcript", self._aggregator.snapshot().to_dict())
        return True

    async def restart(self) -> SessionState:
        previous_id = self._session_id
        reservation = self._reservation
        if reservation is not None and reservation.metered and not isinstance(self._state, (Recording, Scoring, Complete)):
            logger.warning(
                "reservation discarded after restart | session_id=%s user_id=%s cost=%s remaining=%s",
                previous_id,
                self.user_id,
                self.cost,
                reservation.remaining,
            )
        self._timer.cancel()
        await self._stop_source()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        self._session_id = str(uuid.uuid4())
        self._messages = []
        self._aggregator.restart()
        self._result = None
        self._reservation = None
        self._scenario = None
        logger.info("session restarted | previous_session_id=%s session_id=%s", previous_id, self._session_id)
        self._set_state(Idle())
        return self._state

    # -------------------------
    # TRANSCRIPTION
    # -------------------------

    def push_transcript(self, event: TranscriptEvent) -> bool:
        return self._apply_event(event, respond=self.respond_to_transcript)

    def _apply_event(self, event: TranscriptEvent, respond: bool) -> bool:
        if not isinstance(self._state, Recording):
            return False
        accepted = self._aggregator.push(event)
        if not accepted:
            return False
        self._notify("transcript", self._aggregator.snapshot().to_dict())
        if respond and event.is_final:
            self._spawn(self._respond(event.text.strip(), self._session_id))
        return True

    async def _pump(self, session_id: str) -> None:
        try:
            async for event in self.source.events():
                if session_id != self._session_id:
                    return
                self.push_transcript(event)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("transcript pump failed | session_id=%s err=%s", session_id, exc)
            return
        last_error = getattr(self.source, "last_error", None)
        if last_error and isinstance(self._state, Recording):
            logger.warning("transcription ended early | session_id=%s err=%s", session_id, last_error)

    async def _stop_source(self) -> None:
        if self._source_running and self.source is not None:
            self._source_running = False
            try:
                await self.source.stop()
            except Exception as exc:
                logger.warning("transcription stop failed | session_id=%s err=%s", self._session_id, exc)
        task = self._pump_task
        self._pump_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # -------------------------
    # CONVERSATION
    # -------------------------

    async def submit_utterance(self, text: str) -> str | None:
        if not isinstance(self._state, Recording):
            logger.info("utterance ignored | session_id=%s phase=%s", self._session_id, self._state.phase.value)
            return None
        text = str(text or "").strip()
        if not text:
            return None
        self._apply_event(TranscriptEvent(text=text, is_final=True, confidence=1.0), respond=False)
        return await self._respond(text, self._session_id)

    async def _respond(self, text: str, session_id: str) -> str | None:
        async with self._generation_lock:
            if session_id != self._session_id or not isinstance(self._state, Recording):
                return None

            history = list(self._messages)
            self._append_message(Sender.USER, text)

            allow_remote = True
            if self.rate_limiter is not None:
                decision = await self.rate_limiter.check(self.user_id)
                if not decision.allowed:
                    increment_metric("rate_limited")
                    logger.info(
                        "rate limited; fallback only | session_id=%s retry_after=%s",
                        session_id,
                        decision.retry_after_sec,
                    )
                    allow_remote = False

            reply = await self.generator.generate(
                text,
                self._scenario,
                history,
                allow_remote=allow_remote,
                session_id=session_id,
            )

            if session_id != self._session_id or not isinstance(self._state, Recording):
                logger.info("reply dropped | session_id=%s phase=%s", session_id, self._state.phase.value)
                return None

            self._append_message(Sender.COUNTERPART, reply)
            return reply

    def _append_message(self, sender: Sender, text: str) -> Message:
        message = Message(sender=sender, text=text, timestamp=self._clock())
        self._messages.append(message)
        self._notify("message", message.to_dict())
        return message

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def _describe(outcome) -> str:
    parts = [f"{key}={value}" for key, value in vars(outcome).items()]
    return ", ".join(parts)
