from __future__ import annotations

import logging
import random

from core.config import SESSION_CLEANUP_TTL_SEC
from core.state import SessionPhase
from practice_engine.entitlement import EntitlementGate, EntitlementLedger, build_entitlement_ledger
from practice_engine.generation import GenerationService, ResponseGenerator, build_generation_service
from practice_engine.metrics import get_metrics_snapshot
from practice_engine.ratelimit import RateLimiter
from practice_engine.scoring import ScoringEngine
from practice_engine.session import (
    CompletionSink,
    LoggingCompletionSink,
    SessionNotification,
    SessionRegistry,
    SessionStateMachine,
)
from practice_engine.transcript import TranscriptionSource

logger = logging.getLogger("practice_engine.runtime")


class PracticeEngine:
    """
    Owns the collaborators shared by every session of one deployment:
    ledger, generation service, rate limiter, completion sink, registry.
    Anything not passed in is built from the environment.
    """

    def __init__(
        self,
        ledger: EntitlementLedger | None = None,
        service: GenerationService | None = None,
        rate_limiter: RateLimiter | None = None,
        sink: CompletionSink | None = None,
        registry: SessionRegistry | None = None,
        rng: random.Random | None = None,
        use_remote_service: bool = True,
    ):
        self.gate = EntitlementGate(ledger or build_entitlement_ledger())
        if service is None and use_remote_service:
            service = build_generation_service()
        self.generator = ResponseGenerator(service=service, rng=rng)
        self.scoring = ScoringEngine()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.sink = sink or LoggingCompletionSink()
        self.registry = registry or SessionRegistry()

    def new_session(
        self,
        user_id: str | None = None,
        *,
        guest: bool = False,
        source: TranscriptionSource | None = None,
        **options,
    ) -> SessionStateMachine:
        machine = SessionStateMachine(
            gate=self.gate,
            generator=self.generator,
            scoring=self.scoring,
            source=source,
            sink=self.sink,
            rate_limiter=self.rate_limiter,
            user_id=user_id,
            guest=guest,
            **options,
        )
        self.registry.register(machine.session_id, machine)
        current = {"session_id": machine.session_id}
        machine.subscribe(lambda notification: self._track(machine, current, notification))
        logger.info("session created | session_id=%s guest=%s", machine.session_id, guest)
        return machine

    def _track(self, machine: SessionStateMachine, current: dict, notification: SessionNotification) -> None:
        session_id = notification.session_id
        if session_id != current["session_id"]:
            # restart() hands the machine a fresh session id
            self.registry.mark_inactive(current["session_id"])
            current["session_id"] = session_id
            self.registry.register(session_id, machine)
            return
        self.registry.touch(session_id)
        if notification.kind == "state" and notification.payload.get("phase") == SessionPhase.COMPLETE.value:
            self.registry.mark_inactive(session_id)

    def get_session(self, session_id: str) -> SessionStateMachine:
        return self.registry.require(session_id)

    def cleanup_inactive(self, ttl_sec: float = SESSION_CLEANUP_TTL_SEC) -> int:
        removed = self.registry.cleanup_inactive(ttl_sec)
        if removed:
            logger.info("inactive sessions removed | count=%s", removed)
        return removed

    def metrics(self) -> dict:
        return get_metrics_snapshot(extra={"active_sessions": self.registry.active_count()})

    def close(self) -> None:
        self.rate_limiter.close()
