from __future__ import annotations

import logging

from core.config import AUTO_GRANT_TRIAL
from core.logger import log_event
from practice_engine.entitlement.ledger import EntitlementLedger
from practice_engine.entitlement.models import (
    AuthenticationRequired,
    InsufficientCredits,
    ReservationFailed,
    ReservationOutcome,
    Reserved,
    TrialAvailable,
    TrialGrantFailed,
)
from practice_engine.metrics import increment_metric

logger = logging.getLogger("practice_engine.entitlement.gate")


class EntitlementGate:
    """
    Decides whether a practice session may start and, if so, deducts its cost.

    Each call reads the balance fresh from the ledger. The only state kept is
    the pre-deduct balance of sessions whose deduct call failed, so a retry
    for the same session id can tell whether that deduct committed anyway.
    """

    def __init__(self, ledger: EntitlementLedger, auto_grant_trial: bool = AUTO_GRANT_TRIAL):
        self.ledger = ledger
        self.auto_grant_trial = bool(auto_grant_trial)
        self._unconfirmed_deducts: dict[str, int] = {}

    async def check_and_reserve(
        self,
        user_id: str | None,
        feature_key: str,
        cost: int,
        *,
        guest: bool = False,
        session_id: str | None = None,
    ) -> ReservationOutcome:
        cost = max(0, int(cost))

        if not user_id and not guest:
            log_event("entitlement", "authentication_required", session_id or "")
            return AuthenticationRequired()

        if guest:
            log_event("entitlement", "guest_reserved", session_id or "", feature=feature_key)
            return Reserved(remaining=None, metered=False)

        try:
            snapshot = await self.ledger.get_balance(user_id)
        except Exception as exc:
            return self._failed(user_id, session_id, "get_balance", exc)

        balance = snapshot.credits_remaining
        trial_granted = False

        pending = self._unconfirmed_deducts.pop(session_id, None) if session_id else None
        if pending is not None and balance <= pending - cost:
            # The failed deduct for this session was applied; its response was lost.
            logger.warning("deduct reconciled | session_id=%s before=%s now=%s", session_id, pending, balance)
            log_event("entitlement", "deduct_reconciled", session_id, balance=balance, cost=cost)
            return Reserved(remaining=balance, metered=True)

        if not snapshot.trial_used and balance < cost:
            if not self.auto_grant_trial:
                log_event("entitlement", "trial_available", session_id or "", balance=balance)
                return TrialAvailable(balance=balance)
            try:
                granted = await self.ledger.grant_trial(user_id)
            except Exception as exc:
                logger.warning("trial grant failed | user_id=%s err=%s", user_id, exc)
                log_event("entitlement", "trial_grant_failed", session_id or "", error=str(exc))
                return TrialGrantFailed(error=str(exc))
            balance = granted.credits_remaining
            trial_granted = True
            log_event("entitlement", "trial_granted", session_id or "", balance=balance)

        if balance >= cost:
            try:
                accepted = await self.ledger.deduct(
                    user_id,
                    feature_key,
                    cost,
                    idempotency_key=session_id,
                )
            except Exception as exc:
                if session_id:
                    self._unconfirmed_deducts[session_id] = balance
                return self._failed(user_id, session_id, "deduct", exc)

            if not accepted:
                # Ledger saw a lower balance than our read; another session won the race.
                log_event("entitlement", "deduct_rejected", session_id or "", balance=balance, cost=cost)
                return InsufficientCredits(balance=balance, cost=cost)

            remaining = balance - cost
            log_event(
                "entitlement",
                "reserved",
                session_id or "",
                feature=feature_key,
                cost=cost,
                remaining=remaining,
                trial_granted=trial_granted,
            )
            return Reserved(remaining=remaining, metered=True, trial_granted=trial_granted)

        log_event("entitlement", "insufficient_credits", session_id or "", balance=balance, cost=cost)
        return InsufficientCredits(balance=balance, cost=cost)

    def _failed(self, user_id: str, session_id: str | None, stage: str, exc: Exception) -> ReservationFailed:
        increment_metric("reservation_failed")
        logger.error("reservation failed | stage=%s user_id=%s err=%s", stage, user_id, exc)
        log_event("entitlement", "reservation_failed", session_id or "", stage=stage, error=str(exc))
        return ReservationFailed(error=f"{stage}: {exc}")
