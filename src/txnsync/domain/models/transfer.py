"""On-chain transfer records and the token metadata used to interpret them."""

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict


class TokenDetails(BaseModel):
    """ERC20 metadata fetched once per run."""

    model_config = ConfigDict(frozen=True)

    decimals: int  # power of ten between base units and one display unit
    name: str = ""


class Transfer(BaseModel):
    """A single token movement parsed from an export row. Immutable once parsed."""

    model_config = ConfigDict(frozen=True)

    from_address: str
    to_address: str
    amount: int | None  # base units
    execution_time: datetime  # UTC
    transaction_hash: str

    @property
    def execution_date_utc(self) -> date:
        ts = self.execution_time
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)
        return ts.date()

    def touches(self, address: str) -> bool:
        addr = address.lower()
        return self.from_address.lower() == addr or self.to_address.lower() == addr
