from practice_engine.safety.filter import (
    ContentSafetyFilter,
    SafetyContext,
    SafetyLevel,
    SafetyVerdict,
    analyze,
)

__all__ = ["ContentSafetyFilter", "SafetyContext", "SafetyLevel", "SafetyVerdict", "analyze"]
