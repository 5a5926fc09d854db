"""Match YNAB ledger entries to on-chain transfers."""

from collections.abc import Callable, Iterable, Iterator

from txnsync.accounting.units import milliunits_to_base_units
from txnsync.domain.models import LedgerEntry, TokenDetails, Transfer

# Same day, the day before or the day after. The ledger date is user-entered local time,
# the transfer timestamp is UTC.
DATE_TOLERANCE_DAYS = 1


def match_transfers(
    entry: LedgerEntry,
    wallet_address: str,
    token_details: TokenDetails,
    transfers: Iterable[Transfer],
) -> list[Transfer]:
    """Return every transfer that could be the on-chain side of `entry`, in pool order.

    A transfer matches when its UTC execution date is within one calendar day of the entry
    date, it leaves the wallet (outflow) or arrives at it (inflow), and its base-unit amount
    equals the entry amount converted at the token's decimals.
    """
    wallet = wallet_address.lower()
    expected = milliunits_to_base_units(entry.amount, token_details.decimals)

    matches: list[Transfer] = []
    for transfer in transfers:
        if transfer.amount is None:
            continue
        if abs((transfer.execution_date_utc - entry.date).days) > DATE_TOLERANCE_DAYS:
            continue
        counterpart = transfer.from_address if entry.is_outbound else transfer.to_address
        if counterpart.lower() != wallet:
            continue
        if transfer.amount == expected:
            matches.append(transfer)
    return matches


class TransferPool:
    """The run's transfers, each consumable at most once.

    Transfers are tracked by position, so two rows with identical content stay distinct.
    """

    def __init__(self, transfers: Iterable[Transfer]) -> None:
        self._transfers: list[Transfer] = list(transfers)
        self._consumed: set[int] = set()

    def __len__(self) -> int:
        return len(self._transfers) - len(self._consumed)

    def __iter__(self) -> Iterator[Transfer]:
        return iter(self.remaining())

    def remaining(self) -> list[Transfer]:
        return [t for idx, t in enumerate(self._transfers) if idx not in self._consumed]

    def consume(self, transfer: Transfer) -> None:
        for idx, candidate in enumerate(self._transfers):
            if candidate is transfer and idx not in self._consumed:
                self._consumed.add(idx)
                return
        raise KeyError(f"transfer {transfer.transaction_hash} is not available in the pool")

    def discard_hashes(self, predicate: Callable[[str], bool]) -> int:
        """Drop every remaining transfer whose hash satisfies `predicate`. Returns how many."""
        count = 0
        for idx, transfer in enumerate(self._transfers):
            if idx not in self._consumed and predicate(transfer.transaction_hash):
                self._consumed.add(idx)
                count += 1
        return count
