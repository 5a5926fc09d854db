from datetime import datetime, timezone

import pytest

from txnsync.domain.models import TokenDetails, Transfer

WALLET = "0xC8B0C609712aa852B1E390deD058276fa9bc36f1"
COUNTERPARTY = "0x9134fc7112b478e97eE6F0E6A7bf81EcAfef19ED"


@pytest.fixture()
def usdc() -> TokenDetails:
    return TokenDetails(decimals=6, name="USDC")


@pytest.fixture()
def make_transfer():
    """Build a Transfer with sensible defaults; `at` is "YYYY-MM-DD HH:MM:SS" in UTC."""

    def _make(
        amount: int | None = 1_000_000,
        at: str = "2025-12-10 11:53:23",
        from_address: str = COUNTERPARTY,
        to_address: str = WALLET,
        tx_hash: str = "0xhash",
    ) -> Transfer:
        return Transfer(
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            execution_time=datetime.strptime(at, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc),
            transaction_hash=tx_hash,
        )

    return _make
