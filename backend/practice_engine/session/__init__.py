from practice_engine.session.machine import SessionListener, SessionNotification, SessionStateMachine
from practice_engine.session.registry import SessionRegistry, session_registry
from practice_engine.session.sink import CallbackCompletionSink, CompletionSink, LoggingCompletionSink
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

__all__ = [
    "AwaitingEntitlement",
    "Blocked",
    "CallbackCompletionSink",
    "CompletionSink",
    "Complete",
    "CountdownTimer",
    "Idle",
    "LoggingCompletionSink",
    "Recording",
    "Scoring",
    "SessionListener",
    "SessionNotification",
    "SessionRegistry",
    "SessionState",
    "SessionStateMachine",
    "session_registry",
    "state_to_dict",
]
