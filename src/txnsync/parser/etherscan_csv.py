"""Parse an Etherscan token-transfer CSV export into Transfer records.

Columns may appear in any order and extra columns are ignored. The required ones are
matched case-insensitively after trimming whitespace:
    Transaction Hash, From, To, Amount, DateTime (UTC)
"""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from txnsync.accounting.units import parse_decimal_to_base_units
from txnsync.domain.models import TokenDetails, Transfer
from txnsync.exceptions import MalformedRecordError, MissingColumnError, TransferParseError

logger = logging.getLogger(__name__)

EXECUTION_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
UTF8_BOM = "\ufeff"

COL_TX_HASH = "Transaction Hash"
COL_FROM = "From"
COL_TO = "To"
COL_AMOUNT = "Amount"
COL_DATETIME = "DateTime (UTC)"


@dataclass(frozen=True)
class ColumnIndex:
    """Positions of the required columns, resolved once from the header row."""

    tx_hash: int
    from_address: int
    to_address: int
    amount: int
    execution_time: int

    @property
    def width(self) -> int:
        return max(self.tx_hash, self.from_address, self.to_address, self.amount, self.execution_time) + 1

    @classmethod
    def from_header(cls, header: list[str]) -> "ColumnIndex":
        positions = {cell.strip().lower(): idx for idx, cell in enumerate(header)}

        def require(name: str) -> int:
            try:
                return positions[name.lower()]
            except KeyError:
                raise MissingColumnError(name, header) from None

        return cls(
            tx_hash=require(COL_TX_HASH),
            from_address=require(COL_FROM),
            to_address=require(COL_TO),
            amount=require(COL_AMOUNT),
            execution_time=require(COL_DATETIME),
        )


def strip_utf8_bom(text: str) -> str:
    return text[len(UTF8_BOM):] if text.startswith(UTF8_BOM) else text


def transfers_from_etherscan_csv(content: str | bytes, token_details: TokenDetails) -> list[Transfer]:
    """Parse the whole export. Rows keep file order; duplicate hashes are not collapsed."""
    if isinstance(content, bytes):
        content = content.decode("utf-8")

    reader = csv.reader(io.StringIO(strip_utf8_bom(content)), skipinitialspace=True)
    try:
        header = next(reader)
    except StopIteration:
        raise TransferParseError("failed to read the first line of the CSV: file is empty") from None
    except csv.Error as exc:
        raise TransferParseError(f"failed to read the first line of the CSV: {exc}") from exc

    columns = ColumnIndex.from_header(header)

    transfers: list[Transfer] = []
    try:
        for record in reader:
            if not record:
                logger.debug("Row has no values in it; skipping")
                continue
            transfers.append(_parse_record(record, columns, token_details))
    except csv.Error as exc:
        raise TransferParseError(f"read CSV record at line {reader.line_num}: {exc}") from exc

    return transfers


def _parse_record(record: list[str], columns: ColumnIndex, token_details: TokenDetails) -> Transfer:
    if len(record) < columns.width:
        raise MalformedRecordError(record)

    tx_hash = record[columns.tx_hash].strip()
    amount_text = record[columns.amount].strip()
    time_text = record[columns.execution_time].strip()

    amount = parse_decimal_to_base_units(amount_text, token_details.decimals, tx_hash)

    try:
        executed_at = datetime.strptime(time_text, EXECUTION_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise TransferParseError(
            f"parse execution time {time_text!r} for transaction hash {tx_hash!r}: {exc}"
        ) from exc

    return Transfer(
        from_address=record[columns.from_address].strip(),
        to_address=record[columns.to_address].strip(),
        amount=amount,
        execution_time=executed_at,
        transaction_hash=tx_hash,
    )
