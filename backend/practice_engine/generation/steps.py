from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

logger = logging.getLogger("practice_engine.generation.steps")


@dataclass(frozen=True)
class Success:
    value: str


@dataclass(frozen=True)
class Skip:
    reason: str


@dataclass(frozen=True)
class Fail:
    reason: str
    error: str = ""


AttemptOutcome = Union[Success, Skip, Fail]


@dataclass
class Attempt:
    name: str
    run: Callable[[], Awaitable[AttemptOutcome]]


@dataclass
class ChainResult:
    value: str | None
    source: str | None
    trail: list[tuple[str, AttemptOutcome]] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.value is not None

    def outcome_of(self, name: str) -> AttemptOutcome | None:
        for step_name, outcome in self.trail:
            if step_name == name:
                return outcome
        return None


async def run_chain(attempts: list[Attempt]) -> ChainResult:
    """
    Evaluate attempts in order; the first Success wins. An attempt that
    raises is recorded as Fail and the chain moves on.
    """
    trail: list[tuple[str, AttemptOutcome]] = []
    for attempt in attempts:
        try:
            outcome = await attempt.run()
        except Exception as exc:
            logger.warning("attempt raised | step=%s err=%s", attempt.name, exc)
            outcome = Fail(reason="exception", error=str(exc))

        trail.append((attempt.name, outcome))
        if isinstance(outcome, Success):
            return ChainResult(value=outcome.value, source=attempt.name, trail=trail)

    return ChainResult(value=None, source=None, trail=trail)
