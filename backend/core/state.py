# backend/core/state.py

from enum import Enum

class SessionPhase(str, Enum):
    IDLE = "idle"
    AWAITING_ENTITLEMENT = "awaiting_entitlement"
    RECORDING = "recording"
    SCORING = "scoring"
    COMPLETE = "complete"
    BLOCKED = "blocked"
