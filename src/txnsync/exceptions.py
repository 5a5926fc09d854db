"""Error taxonomy shared by the parser, collaborators and the reconciliation workflow."""


class TxnSyncError(Exception):
    """Base class for all errors raised by txnsync."""


class ConfigurationError(TxnSyncError):
    """Required setting missing or the configured budget/account/token cannot be used."""


class TransferParseError(TxnSyncError):
    """The transfer export could not be turned into Transfer records."""


class MissingColumnError(TransferParseError):
    def __init__(self, column: str, available: list[str]) -> None:
        self.column = column
        self.available = available
        super().__init__(
            f"CSV is missing required column: {column} from available columns: [{', '.join(available)}]"
        )


class MalformedRecordError(TransferParseError):
    def __init__(self, record: list[str]) -> None:
        self.record = record
        super().__init__(f"malformed csv record: {record}")


class InvalidAmountError(TransferParseError):
    """Amount text is empty, not a number, or more precise than the token allows."""


class AmountOverflowError(TxnSyncError):
    """A computed ledger amount does not fit in a signed 64-bit integer."""


class ExternalServiceError(TxnSyncError):
    """A collaborator (YNAB API, RPC node) failed or returned something unusable."""


class IgnoreListError(TxnSyncError):
    """The persisted ignore list could not be decoded."""


class UserCanceledError(TxnSyncError):
    """The user aborted an interactive prompt; the whole run unwinds."""

    def __init__(self, message: str = "user canceled operation") -> None:
        super().__init__(message)
