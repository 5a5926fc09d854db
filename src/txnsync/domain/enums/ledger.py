from enum import Enum


class ClearedStatus(str, Enum):
    """YNAB transaction clearing state."""

    CLEARED = "cleared"
    UNCLEARED = "uncleared"
    RECONCILED = "reconciled"


class ImportAction(str, Enum):
    """What to do with a transfer that matched no ledger entry."""

    CREATE = "create"
    SKIP = "skip"
    IGNORE = "ignore"
