"""Exact conversions between token amounts and YNAB milliunits. Pure functions, integers only.

Three representations are involved:
    - human-entered decimal text, e.g. "101.5"
    - token base units (int, scale = 10**decimals)
    - YNAB milliunits (int, scale = 1000 per currency unit)

Both directions between base units and milliunits floor-divide. A base-unit amount that is not
on a milliunit boundary therefore loses its remainder and may not convert back to itself.
"""

from decimal import Decimal

from txnsync.exceptions import AmountOverflowError, InvalidAmountError

MILLIUNITS_PER_UNIT = 1000
MAX_LEDGER_AMOUNT = 2**63 - 1

_GROUPING_SEPARATORS = (",", "_", " ")


def parse_integer(text: str) -> int:
    """Parse a base-10 integer, allowing comma, underscore and space grouping separators."""
    sanitized = text
    for sep in _GROUPING_SEPARATORS:
        sanitized = sanitized.replace(sep, "")
    if not sanitized.isdigit() or not sanitized.isascii():
        raise InvalidAmountError(f"invalid integer string: {text}")
    return int(sanitized)


def parse_decimal_to_base_units(text: str, decimals: int, tx_hash: str | None = None) -> int:
    """Convert decimal text such as "1,234.5" into base units for a token with `decimals` places.

    Raises InvalidAmountError when the text is empty, not numeric, or carries more
    fractional digits (after trimming trailing zeros) than the token supports.
    """
    where = f" for transaction hash {tx_hash!r}" if tx_hash else ""
    if text == "":
        if tx_hash:
            raise InvalidAmountError(f"transaction hash {tx_hash!r} has empty amount field")
        raise InvalidAmountError("empty amount field")

    whole_text, _, frac_text = text.partition(".")
    try:
        whole = parse_integer(whole_text)
    except InvalidAmountError as exc:
        raise InvalidAmountError(f"parse whole token amount {whole_text!r}{where}: {exc}") from exc

    scale = 10**decimals
    total = whole * scale

    frac_digits = frac_text.rstrip("0")
    if frac_digits:
        if not (frac_digits.isdigit() and frac_digits.isascii()):
            raise InvalidAmountError(f"parse fractional token amount {frac_text!r}{where}: invalid digits")
        exponent = decimals - len(frac_digits)
        if exponent < 0:
            raise InvalidAmountError(
                f"fractional token amount {text!r}{where} has more decimal places than token supports"
            )
        total += int(frac_digits) * 10**exponent

    return total


def base_units_to_milliunits(base_units: int, decimals: int, outbound: bool) -> int:
    """Convert base units to signed YNAB milliunits, dropping any sub-milliunit remainder."""
    milli = base_units * MILLIUNITS_PER_UNIT // 10**decimals
    if outbound:
        milli = -milli
    if abs(milli) > MAX_LEDGER_AMOUNT:
        raise AmountOverflowError(f"computed amount exceeds int64: {milli}")
    return milli


def milliunits_to_base_units(milliunits: int, decimals: int) -> int:
    """Base-unit amount a transfer must carry to match a ledger amount of `milliunits`."""
    return abs(milliunits) * 10**decimals // MILLIUNITS_PER_UNIT


def format_base_units(base_units: int | None, decimals: int) -> str:
    """Render base units as a display amount with trailing zeros (and point) trimmed."""
    if base_units is None:
        return "0"
    if decimals <= 0:
        return str(base_units)

    whole, frac = divmod(base_units, 10**decimals)
    text = f"{whole}.{frac:0{decimals}d}".rstrip("0")
    return text.rstrip(".")


def format_milliunits(milliunits: int) -> str:
    """Unsigned two-place rendering of a ledger amount, for log lines and prompts."""
    value = Decimal(abs(milliunits)) / MILLIUNITS_PER_UNIT
    return f"{value:.2f}"
