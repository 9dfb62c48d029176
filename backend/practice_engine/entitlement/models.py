from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class EntitlementSnapshot:
    credits_remaining: int
    trial_used: bool

    def __post_init__(self):
        object.__setattr__(self, "credits_remaining", max(0, int(self.credits_remaining or 0)))
        object.__setattr__(self, "trial_used", bool(self.trial_used))


@dataclass(frozen=True)
class Reserved:
    remaining: int | None
    metered: bool = True
    trial_granted: bool = False


@dataclass(frozen=True)
class InsufficientCredits:
    balance: int
    cost: int


@dataclass(frozen=True)
class TrialAvailable:
    balance: int


@dataclass(frozen=True)
class AuthenticationRequired:
    pass


@dataclass(frozen=True)
class TrialGrantFailed:
    error: str


@dataclass(frozen=True)
class ReservationFailed:
    error: str


ReservationOutcome = Union[
    Reserved,
    InsufficientCredits,
    TrialAvailable,
    AuthenticationRequired,
    TrialGrantFailed,
    ReservationFailed,
]


# Reason codes surfaced through Blocked{reason}. ReservationFailed shares the
# insufficient-credits code; only the logs tell them apart.
DENIAL_REASONS: dict[type, str] = {
    InsufficientCredits: "insufficient_credits",
    ReservationFailed: "insufficient_credits",
    TrialAvailable: "trial_available",
    AuthenticationRequired: "authentication_required",
    TrialGrantFailed: "trial_grant_failed",
}


def denial_reason(outcome: ReservationOutcome) -> str | None:
    if isinstance(outcome, Reserved):
        return None
    return DENIAL_REASONS.get(type(outcome), "entitlement_denied")
