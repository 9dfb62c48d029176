from __future__ import annotations

import logging
from typing import Protocol

import httpx

from core.config import LEDGER_API_KEY, LEDGER_TIMEOUT_SEC, LEDGER_URL
from practice_engine.entitlement.models import EntitlementSnapshot
from practice_engine.errors import LedgerError

logger = logging.getLogger("practice_engine.entitlement.ledger")


class EntitlementLedger(Protocol):
    async def get_balance(self, user_id: str) -> EntitlementSnapshot:
        ...

    async def grant_trial(self, user_id: str) -> EntitlementSnapshot:
        ...

    async def deduct(
        self,
        user_id: str,
        feature: str,
        amount: int,
        idempotency_key: str | None = None,
    ) -> bool:
        ...


class SupabaseLedger:
    """
    Entitlement ledger backed by Supabase PostgREST.

    Reads ``user_profiles`` and calls the ``grant_trial_credit`` and
    ``deduct_credits_and_log_usage`` RPCs. Every transport or payload problem
    is raised as ``LedgerError``.
    """

    def __init__(
        self,
        base_url: str = LEDGER_URL,
        api_key: str = LEDGER_API_KEY,
        timeout_sec: float = LEDGER_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("SupabaseLedger requires LEDGER_URL")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_sec = timeout_sec
        self._transport = transport

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise LedgerError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise LedgerError(f"{method} {path} returned {response.status_code}")
        return response

    @staticmethod
    def _snapshot_from(data) -> EntitlementSnapshot:
        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict):
            raise LedgerError("ledger returned no profile row")
        try:
            return EntitlementSnapshot(
                credits_remaining=int(row.get("credits_remaining") or 0),
                trial_used=bool(row.get("trial_used", False)),
            )
        except (TypeError, ValueError) as exc:
            raise LedgerError(f"malformed profile row: {exc}") from exc

    async def get_balance(self, user_id: str) -> EntitlementSnapshot:
        response = await self._request(
            "GET",
            "/rest/v1/user_profiles",
            params={"select": "credits_remaining,trial_used", "id": f"eq.{user_id}"},
            headers=self._headers(),
        )
        try:
            return self._snapshot_from(response.json())
        except ValueError as exc:
            raise LedgerError(f"invalid balance payload: {exc}") from exc

    async def grant_trial(self, user_id: str) -> EntitlementSnapshot:
        response = await self._request(
            "POST",
            "/rest/v1/rpc/grant_trial_credit",
            json={"p_user_id": user_id},
            headers=self._headers(),
        )
        try:
            return self._snapshot_from(response.json())
        except ValueError as exc:
            raise LedgerError(f"invalid trial payload: {exc}") from exc

    async def deduct(
        self,
        user_id: str,
        feature: str,
        amount: int,
        idempotency_key: str | None = None,
    ) -> bool:
        response = await self._request(
            "POST",
            "/rest/v1/rpc/deduct_credits_and_log_usage",
            json={
                "p_user_id": user_id,
                "p_feature_used": feature,
                "p_credits_to_deduct": int(amount),
            },
            headers=self._headers(idempotency_key),
        )
        try:
            accepted = response.json()
        except ValueError as exc:
            raise LedgerError(f"invalid deduct payload: {exc}") from exc
        logger.info("deduct | user_id=%s feature=%s amount=%s accepted=%s", user_id, feature, amount, accepted)
        return bool(accepted)


def build_entitlement_ledger() -> EntitlementLedger:
    if not LEDGER_URL:
        raise RuntimeError("Entitlement ledger requires LEDGER_URL (or SUPABASE_URL)")
    return SupabaseLedger(base_url=LEDGER_URL, api_key=LEDGER_API_KEY, timeout_sec=LEDGER_TIMEOUT_SEC)
