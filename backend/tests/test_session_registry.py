import time

import pytest

from practice_engine.errors import SessionStateError
from practice_engine.session import SessionRegistry


def test_session_registry_register_touch_inactive_cleanup():
    registry = SessionRegistry()
    machine = object()

    registry.register("s1", machine)
    item = registry.get("s1")
    assert item is not None
    assert item["active"] is True
    assert registry.require("s1") is machine
    assert registry.active_count() == 1

    before_touch = float(item["updated_at"])
    time.sleep(0.01)
    registry.touch("s1")
    after_touch = float(registry.get("s1")["updated_at"])
    assert after_touch >= before_touch

    registry.mark_inactive("s1")
    assert registry.get("s1")["active"] is False
    assert registry.active_count() == 0

    # ttl=0 clamps internally to >=30s; force old timestamp for deterministic cleanup
    registry._sessions["s1"]["updated_at"] = time.time() - 3600  # test-only direct mutation
    removed = registry.cleanup_inactive(ttl_sec=0)
    assert removed == 1
    assert registry.get("s1") is None


def test_session_registry_keeps_active_sessions():
    registry = SessionRegistry()
    registry.register("live", object())
    registry._sessions["live"]["updated_at"] = time.time() - 3600  # test-only direct mutation

    assert registry.cleanup_inactive(ttl_sec=60) == 0
    assert registry.get("live") is not None


def test_session_registry_require_unknown_raises():
    registry = SessionRegistry()

    with pytest.raises(SessionStateError):
        registry.require("missing")
