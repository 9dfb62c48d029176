import json

import httpx
import pytest

from conftest import FakeLedger
from practice_engine.entitlement import (
    AuthenticationRequired,
    EntitlementGate,
    InsufficientCredits,
    ReservationFailed,
    Reserved,
    SupabaseLedger,
    TrialAvailable,
    TrialGrantFailed,
    denial_reason,
)
from practice_engine.errors import LedgerError
from practice_engine.metrics import get_metrics_snapshot


@pytest.mark.asyncio
async def test_missing_user_requires_authentication():
    ledger = FakeLedger()
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve(None, "objection_practice", 1)

    assert isinstance(outcome, AuthenticationRequired)
    assert ledger.calls == []


@pytest.mark.asyncio
async def test_guest_is_reserved_without_ledger_calls():
    ledger = FakeLedger(credits=0)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve(None, "objection_practice", 1, guest=True)

    assert outcome == Reserved(remaining=None, metered=False)
    assert ledger.calls == []


@pytest.mark.asyncio
async def test_unused_trial_is_granted_then_deducted():
    ledger = FakeLedger(credits=0, trial_used=False)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-1")

    assert isinstance(outcome, Reserved)
    assert outcome.remaining == 0
    assert outcome.trial_granted is True
    assert [call[0] for call in ledger.calls] == ["get_balance", "grant_trial", "deduct"]
    assert ledger.calls[-1] == ("deduct", "user-1", "objection_practice", 1, "s-1")


@pytest.mark.asyncio
async def test_trial_available_when_auto_grant_disabled():
    ledger = FakeLedger(credits=0, trial_used=False)
    gate = EntitlementGate(ledger, auto_grant_trial=False)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1)

    assert outcome == TrialAvailable(balance=0)
    assert ledger.count("deduct") == 0
    assert denial_reason(outcome) == "trial_available"


@pytest.mark.asyncio
async def test_trial_grant_failure_is_reported():
    ledger = FakeLedger(credits=0, trial_used=False, fail_on="grant_trial")
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1)

    assert isinstance(outcome, TrialGrantFailed)
    assert ledger.count("deduct") == 0


@pytest.mark.asyncio
async def test_sufficient_balance_deducts_once():
    ledger = FakeLedger(credits=3)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-2")

    assert outcome == Reserved(remaining=2, metered=True, trial_granted=False)
    assert ledger.count("deduct") == 1


@pytest.mark.asyncio
async def test_zero_balance_with_used_trial_is_insufficient():
    ledger = FakeLedger(credits=0, trial_used=True)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1)

    assert outcome == InsufficientCredits(balance=0, cost=1)
    assert ledger.count("deduct") == 0


@pytest.mark.asyncio
async def test_rejected_deduct_is_insufficient():
    ledger = FakeLedger(credits=2, accept=False)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1)

    assert isinstance(outcome, InsufficientCredits)


@pytest.mark.asyncio
@pytest.mark.parametrize("stage", ["get_balance", "deduct"])
async def test_ledger_failure_maps_to_reservation_failed(stage):
    ledger = FakeLedger(credits=2, fail_on=stage)
    gate = EntitlementGate(ledger)

    outcome = await gate.check_and_reserve("user-1", "objection_practice", 1)

    assert isinstance(outcome, ReservationFailed)
    assert outcome.error.startswith(stage)
    assert denial_reason(outcome) == "insufficient_credits"
    assert get_metrics_snapshot()["reservation_failed"] == 1


class _CrashingLedger(FakeLedger):
    def __init__(self, crash_on: str, **kwargs):
        super().__init__(**kwargs)
        self.crash_on = crash_on

    async def get_balance(self, user_id):
        if self.crash_on == "get_balance":
            raise RuntimeError("client closed")
        return await super().get_balance(user_id)

    async def grant_trial(self, user_id):
        if self.crash_on == "grant_trial":
            raise KeyError("credits_remaining")
        return await super().grant_trial(user_id)


@pytest.mark.asyncio
async def test_unexpected_ledger_errors_become_outcomes():
    balance_gate = EntitlementGate(_CrashingLedger("get_balance"))
    trial_gate = EntitlementGate(_CrashingLedger("grant_trial", credits=0, trial_used=False))

    balance_outcome = await balance_gate.check_and_reserve("user-1", "objection_practice", 1)
    trial_outcome = await trial_gate.check_and_reserve("user-1", "objection_practice", 1)

    assert isinstance(balance_outcome, ReservationFailed)
    assert "client closed" in balance_outcome.error
    assert isinstance(trial_outcome, TrialGrantFailed)


class _LostResponseLedger(FakeLedger):
    """Applies the first deduct, then loses its response."""

    async def deduct(self, user_id, feature, amount, idempotency_key=None):
        self.calls.append(("deduct", user_id, feature, amount, idempotency_key))
        self.credits -= amount
        if self.count("deduct") == 1:
            raise LedgerError("connection reset")
        return True


@pytest.mark.asyncio
async def test_retry_after_lost_deduct_response_does_not_charge_again():
    ledger = _LostResponseLedger(credits=3)
    gate = EntitlementGate(ledger)

    first = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-1")
    second = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-1")

    assert isinstance(first, ReservationFailed)
    assert second == Reserved(remaining=2, metered=True)
    assert ledger.count("deduct") == 1
    assert ledger.credits == 2


@pytest.mark.asyncio
async def test_retry_after_unapplied_deduct_deducts_once():
    ledger = FakeLedger(credits=3, fail_on="deduct")
    gate = EntitlementGate(ledger)

    first = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-1")
    ledger.fail_on = None
    second = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-1")

    assert isinstance(first, ReservationFailed)
    assert second == Reserved(remaining=2, metered=True)
    assert ledger.credits == 2

    # another session's failed deduct does not leak into this one
    other = await gate.check_and_reserve("user-1", "objection_practice", 1, session_id="s-2")
    assert other == Reserved(remaining=1, metered=True)


def _ledger_transport(handler):
    return SupabaseLedger(
        base_url="https://ledger.test",
        api_key="service-key",
        timeout_sec=1.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_supabase_ledger_balance_and_deduct_requests():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/rest/v1/user_profiles":
            return httpx.Response(200, json=[{"credits_remaining": 4, "trial_used": True}])
        if request.url.path == "/rest/v1/rpc/deduct_credits_and_log_usage":
            return httpx.Response(200, json=True)
        return httpx.Response(404)

    ledger = _ledger_transport(handler)

    snapshot = await ledger.get_balance("user-9")
    accepted = await ledger.deduct("user-9", "objection_practice", 1, idempotency_key="session-9")

    assert snapshot.credits_remaining == 4
    assert snapshot.trial_used is True
    assert accepted is True

    balance_request, deduct_request = seen
    assert balance_request.url.params["id"] == "eq.user-9"
    assert balance_request.headers["apikey"] == "service-key"
    assert deduct_request.headers["Idempotency-Key"] == "session-9"
    assert json.loads(deduct_request.content) == {
        "p_user_id": "user-9",
        "p_feature_used": "objection_practice",
        "p_credits_to_deduct": 1,
    }


@pytest.mark.asyncio
async def test_supabase_ledger_http_error_raises_ledger_error():
    ledger = _ledger_transport(lambda request: httpx.Response(503))

    with pytest.raises(LedgerError):
        await ledger.get_balance("user-9")


@pytest.mark.asyncio
async def test_supabase_ledger_missing_profile_raises_ledger_error():
    ledger = _ledger_transport(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(LedgerError):
        await ledger.get_balance("user-9")


@pytest.mark.asyncio
async def test_gate_over_supabase_ledger_reports_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gate = EntitlementGate(_ledger_transport(handler))

    outcome = await gate.check_and_reserve("user-9", "objection_practice", 1)

    assert isinstance(outcome, ReservationFailed)
