import asyncio
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


@pytest.fixture(autouse=True)
def _fresh_metrics():
    from practice_engine.metrics import reset_metrics

    reset_metrics()
    yield
    reset_metrics()


class FakeLedger:
    def __init__(self, credits: int = 5, trial_used: bool = True, fail_on: str | None = None, accept: bool = True):
        self.credits = credits
        self.trial_used = trial_used
        self.fail_on = fail_on
        self.accept = accept
        self.calls: list[tuple] = []

    def _maybe_fail(self, stage: str):
        from practice_engine.errors import LedgerError

        if self.fail_on == stage:
            raise LedgerError(f"{stage} unavailable")

    async def get_balance(self, user_id):
        from practice_engine.entitlement import EntitlementSnapshot

        self.calls.append(("get_balance", user_id))
        self._maybe_fail("get_balance")
        return EntitlementSnapshot(credits_remaining=self.credits, trial_used=self.trial_used)

    async def grant_trial(self, user_id):
        from practice_engine.entitlement import EntitlementSnapshot

        self.calls.append(("grant_trial", user_id))
        self._maybe_fail("grant_trial")
        self.trial_used = True
        self.credits += 1
        return EntitlementSnapshot(credits_remaining=self.credits, trial_used=True)

    async def deduct(self, user_id, feature, amount, idempotency_key=None):
        self.calls.append(("deduct", user_id, feature, amount, idempotency_key))
        self._maybe_fail("deduct")
        if not self.accept:
            return False
        self.credits -= amount
        return True

    def count(self, name: str) -> int:
        return len([call for call in self.calls if call[0] == name])


class FakeService:
    def __init__(self, reply: str = "That still sounds expensive to me.", error: Exception | None = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def price_scenario():
    from practice_engine.models import Scenario

    return Scenario(objection_category="Price", difficulty="Medium", industry="SaaS")
