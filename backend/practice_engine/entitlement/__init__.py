from practice_engine.entitlement.gate import EntitlementGate
from practice_engine.entitlement.ledger import EntitlementLedger, SupabaseLedger, build_entitlement_ledger
from practice_engine.entitlement.models import (
    AuthenticationRequired,
    EntitlementSnapshot,
    InsufficientCredits,
    ReservationFailed,
    ReservationOutcome,
    Reserved,
    TrialAvailable,
    TrialGrantFailed,
    denial_reason,
)

__all__ = [
    "EntitlementGate",
    "EntitlementLedger",
    "SupabaseLedger",
    "build_entitlement_ledger",
    "AuthenticationRequired",
    "EntitlementSnapshot",
    "InsufficientCredits",
    "ReservationFailed",
    "ReservationOutcome",
    "Reserved",
    "TrialAvailable",
    "TrialGrantFailed",
    "denial_reason",
]
