"""YNAB REST API v1 client, the ledger side of reconciliation."""

import logging
from datetime import date
from typing import Any

import httpx

from txnsync.domain.enums import ClearedStatus
from txnsync.domain.models import (
    Account,
    Budget,
    LedgerEntry,
    NewTransaction,
    TransactionUpdate,
    append_hash_to_memo,
)
from txnsync.exceptions import ExternalServiceError
from txnsync.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

BASE_URL = "https://api.ynab.com/v1"

# Both count as already settled; only uncleared entries are candidates for matching.
_SETTLED = (ClearedStatus.CLEARED, ClearedStatus.RECONCILED)


class YNABClient:
    """Thin typed wrapper over the handful of YNAB endpoints the sync needs."""

    def __init__(self, access_token: str, http_client: RateLimitedClient, base_url: str = BASE_URL) -> None:
        self._access_token = access_token
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def _call(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        payload: dict | None = None,
        expected: tuple[int, ...] = (200,),
    ) -> dict[str, Any]:
        """Execute a request and return the `data` member of the response envelope."""
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            if method == "GET":
                resp = await self._http.get(url, params=params, headers=headers)
            elif method == "POST":
                resp = await self._http.post(url, json=payload, headers=headers)
            else:
                resp = await self._http.put(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"ynab API request {method} {path} failed: {exc}") from exc

        if resp.status_code not in expected:
            raise ExternalServiceError(
                f"ynab API returned status {resp.status_code} on {method} {path}{_error_detail(resp)}"
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExternalServiceError(f"failed to decode ynab response for {method} {path}: {exc}") from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise ExternalServiceError(f"ynab response for {method} {path} has no data envelope")
        return data

    async def get_budgets(self) -> list[Budget]:
        data = await self._call("GET", "/budgets")
        return [Budget(id=b["id"], name=b["name"]) for b in data.get("budgets", [])]

    async def get_accounts(self, budget_id: str) -> list[Account]:
        data = await self._call("GET", f"/budgets/{budget_id}/accounts")
        return [
            Account(id=a["id"], name=a["name"])
            for a in data.get("accounts", [])
            if not a.get("deleted", False)
        ]

    async def get_transactions(
        self, budget_id: str, account_id: str, since_date: date | None = None
    ) -> list[LedgerEntry]:
        """List an account's transactions, optionally only those on or after `since_date`."""
        params = {"since_date": since_date.isoformat()} if since_date is not None else None
        data = await self._call("GET", f"/budgets/{budget_id}/accounts/{account_id}/transactions", params=params)
        return [
            _to_ledger_entry(t)
            for t in data.get("transactions", [])
            if not t.get("deleted", False)
        ]

    async def get_transaction(self, budget_id: str, transaction_id: str) -> LedgerEntry:
        data = await self._call("GET", f"/budgets/{budget_id}/transactions/{transaction_id}")
        return _to_ledger_entry(_require(data, "transaction"))

    async def create_transaction(self, budget_id: str, request: NewTransaction) -> LedgerEntry:
        payload = {"transaction": request.model_dump(mode="json", exclude_none=True)}
        data = await self._call("POST", f"/budgets/{budget_id}/transactions", payload=payload, expected=(200, 201))
        return _to_ledger_entry(_require(data, "transaction"))

    async def update_transaction(self, budget_id: str, transaction_id: str, update: TransactionUpdate) -> None:
        payload = {"transaction": update.model_dump(mode="json", exclude_none=True)}
        await self._call("PUT", f"/budgets/{budget_id}/transactions/{transaction_id}", payload=payload)

    async def mark_cleared_and_append_memo(self, budget_id: str, transaction_id: str, tx_hash: str) -> None:
        """Mark a transaction cleared and add `tx_hash` to its memo, never twice."""
        current = await self.get_transaction(budget_id, transaction_id)
        update = TransactionUpdate(
            memo=append_hash_to_memo(current.memo, tx_hash),
            cleared=ClearedStatus.CLEARED,
        )
        await self.update_transaction(budget_id, transaction_id, update)
        logger.debug("Marked transaction %s cleared with hash %s", transaction_id, tx_hash)


def _require(data: dict, key: str) -> dict:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ExternalServiceError(f"ynab response is missing '{key}'")
    return value


def _to_ledger_entry(raw: dict) -> LedgerEntry:
    try:
        return LedgerEntry(
            id=raw["id"],
            amount=raw["amount"],
            date=date.fromisoformat(raw["date"]),
            payee=raw.get("payee_name") or "",
            memo=raw.get("memo") or "",
            cleared=ClearedStatus((raw.get("cleared") or ClearedStatus.UNCLEARED.value).lower()) in _SETTLED,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ExternalServiceError(f"unexpected ynab transaction payload: {exc}") from exc


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        detail = body["error"].get("detail") or body["error"].get("name")
        if detail:
            return f": {detail}"
    return ""
