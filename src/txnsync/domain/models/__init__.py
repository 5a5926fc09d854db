from txnsync.domain.models.ledger import (
    Account,
    Budget,
    LedgerEntry,
    NewTransaction,
    TransactionUpdate,
    append_hash_to_memo,
)
from txnsync.domain.models.transfer import TokenDetails, Transfer

__all__ = [
    "Account",
    "Budget",
    "LedgerEntry",
    "NewTransaction",
    "TokenDetails",
    "TransactionUpdate",
    "Transfer",
    "append_hash_to_memo",
]
