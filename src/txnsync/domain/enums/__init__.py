from txnsync.domain.enums.direction import Direction
from txnsync.domain.enums.ledger import ClearedStatus, ImportAction

__all__ = [
    "ClearedStatus",
    "Direction",
    "ImportAction",
]
