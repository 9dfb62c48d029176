from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from core.state import SessionPhase
from practice_engine.scoring import ScoreResult


@dataclass(frozen=True)
class Idle:
    phase = SessionPhase.IDLE


@dataclass(frozen=True)
class AwaitingEntitlement:
    phase = SessionPhase.AWAITING_ENTITLEMENT


@dataclass(frozen=True)
class Recording:
    deadline: float
    text_only: bool = False
    phase = SessionPhase.RECORDING


@dataclass(frozen=True)
class Scoring:
    phase = SessionPhase.SCORING


@dataclass(frozen=True)
class Complete:
    result: ScoreResult
    phase = SessionPhase.COMPLETE


@dataclass(frozen=True)
class Blocked:
    reason: str
    detail: str = ""
    phase = SessionPhase.BLOCKED


SessionState = Union[Idle, AwaitingEntitlement, Recording, Scoring, Complete, Blocked]


def state_to_dict(state: SessionState) -> dict:
    payload: dict = {"phase": state.phase.value}
    if isinstance(state, Recording):
        payload["deadline"] = state.deadline
        payload["text_only"] = state.text_only
    elif isinstance(state, Complete):
        payload["result"] = state.result.to_dict()
    elif isinstance(state, Blocked):
        payload["reason"] = state.reason
        payload["detail"] = state.detail
    return payload
