import json
import logging

from core.logger import configure_logging, log_event


def test_log_event_redacts_transcript_fields(caplog):
    with caplog.at_level(logging.INFO, logger="practice_engine.events"):
        log_event("session", "recording_started", "s-1", transcript="I understand the cost", cost=1)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["component"] == "session"
    assert payload["session_id"] == "s-1"
    assert payload["transcript"] == {"redacted": True, "length": 21}
    assert payload["cost"] == 1


def test_configure_logging_installs_single_handler():
    root = logging.getLogger("practice_engine")
    existing = list(root.handlers)
    try:
        configure_logging()
        configure_logging()
        assert len(root.handlers) == max(1, len(existing))
    finally:
        root.handlers = existing
