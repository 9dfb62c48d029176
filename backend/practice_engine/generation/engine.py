from __future__ import annotations

import logging
import random
import time

from core.config import HISTORY_WINDOW
from core.logger import log_event
from practice_engine.errors import GenerationError
from practice_engine.generation import fallback
from practice_engine.generation.remote import GenerationRequest, GenerationService
from practice_engine.generation.steps import Attempt, Fail, Skip, Success, run_chain
from practice_engine.metrics import increment_metric, observe_generation_latency_ms
from practice_engine.models import Message, Scenario
from practice_engine.safety import ContentSafetyFilter, SafetyContext

logger = logging.getLogger("practice_engine.generation")


class ResponseGenerator:
    """
    Produces the counterpart's next line.

    Order: input safety -> remote service -> rule-based fallback, then the
    chosen reply goes through output safety. ``generate`` always returns a
    non-empty string.
    """

    def __init__(
        self,
        service: GenerationService | None = None,
        safety: ContentSafetyFilter | None = None,
        rng: random.Random | None = None,
        history_window: int = HISTORY_WINDOW,
    ):
        self.service = service
        self.safety = safety or ContentSafetyFilter()
        self.rng = rng or random.Random()
        self.history_window = max(1, int(history_window))

    async def generate(
        self,
        user_input: str,
        scenario: Scenario,
        history: list[Message] | None = None,
        *,
        allow_remote: bool = True,
        session_id: str | None = None,
    ) -> str:
        history = list(history or [])
        sanitized = {"text": str(user_input or "")}

        async def _input_safety():
            verdict = self.safety.analyze(user_input, SafetyContext.USER_INPUT)
            if verdict.blocked:
                increment_metric("safety_blocked_input")
                logger.info("input blocked | issues=%s", verdict.issues)
                return Success(fallback.SAFETY_REFUSAL)
            sanitized["text"] = verdict.sanitized_text
            return Skip("input_clean")

        async def _remote():
            if self.service is None:
                return Skip("no_service")
            if not allow_remote:
                return Skip("remote_disallowed")

            request = GenerationRequest(
                user_input=sanitized["text"],
                scenario=scenario,
                history=history[-self.history_window:],
                is_first_turn=fallback.is_first_turn(history),
            )
            started = time.perf_counter()
            try:
                text = await self.service.generate(request)
            except GenerationError as exc:
                increment_metric("generation_remote_failed")
                return Fail("remote_error", str(exc))
            except Exception as exc:
                increment_metric("generation_remote_failed")
                return Fail("unexpected_error", str(exc) or exc.__class__.__name__)
            finally:
                observe_generation_latency_ms((time.perf_counter() - started) * 1000.0)

            text = str(text or "").strip()
            if not text:
                increment_metric("generation_remote_failed")
                return Fail("malformed", "empty reply")
            increment_metric("generation_remote_success")
            return Success(text)

        async def _fallback():
            increment_metric("generation_fallback")
            return Success(fallback.fallback_reply(sanitized["text"], scenario, history, self.rng))

        result = await run_chain(
            [
                Attempt("input_safety", _input_safety),
                Attempt("remote", _remote),
                Attempt("fallback", _fallback),
            ]
        )

        reply = result.value
        if not reply:
            # The fallback step only fails if the tables themselves are broken.
            reply = fallback.REPHRASE_MESSAGE

        if result.source != "input_safety":
            verdict = self.safety.analyze(reply, SafetyContext.MODEL_OUTPUT)
            if verdict.blocked:
                increment_metric("safety_blocked_output")
                logger.info("output blocked | source=%s issues=%s", result.source, verdict.issues)
                reply = fallback.REPHRASE_MESSAGE

        remote_outcome = result.outcome_of("remote")
        if isinstance(remote_outcome, Fail):
            logger.warning("remote generation failed | reason=%s err=%s", remote_outcome.reason, remote_outcome.error)

        log_event(
            "generation",
            "reply_generated",
            session_id,
            source=result.source,
            trail=[name for name, _ in result.trail],
            reply=reply,
        )
        return reply

    def scenario_intro(self, scenario: Scenario) -> str:
        return fallback.scenario_intro(scenario)
