"""YNAB-side records and the request bodies sent to the ledger API."""

import datetime

from pydantic import BaseModel

from txnsync.accounting.units import format_milliunits
from txnsync.domain.enums import ClearedStatus


class Budget(BaseModel):
    id: str
    name: str


class Account(BaseModel):
    id: str
    name: str


class LedgerEntry(BaseModel):
    """A YNAB transaction. Amount is in milliunits (1000 == one currency unit), negative = outflow."""

    id: str
    amount: int
    date: datetime.date
    payee: str = ""
    memo: str = ""
    cleared: bool = False

    @property
    def is_outbound(self) -> bool:
        return self.amount < 0

    @property
    def formatted_amount(self) -> str:
        return format_milliunits(self.amount)


class NewTransaction(BaseModel):
    """Body of POST /budgets/{budget_id}/transactions. Unset fields are omitted from the request."""

    account_id: str
    date: datetime.date
    amount: int
    payee_name: str | None = None
    memo: str | None = None
    category_id: str | None = None
    flag_color: str | None = None
    cleared: ClearedStatus | None = None
    approved: bool | None = None


class TransactionUpdate(BaseModel):
    """Body of PUT /budgets/{budget_id}/transactions/{transaction_id}."""

    memo: str | None = None
    cleared: ClearedStatus | None = None


def append_hash_to_memo(memo: str, tx_hash: str) -> str:
    """Append the transaction hash to a memo unless it is already there."""
    memo = memo.strip()
    if not tx_hash or tx_hash in memo:
        return memo
    if not memo:
        return f"transaction hash: {tx_hash}"
    return f"{memo}; transaction hash: {tx_hash}"
