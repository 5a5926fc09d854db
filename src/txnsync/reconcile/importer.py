"""Offer unmatched wallet transfers for creation as new YNAB transactions."""

import logging
from datetime import date

from txnsync.accounting.units import base_units_to_milliunits, format_base_units
from txnsync.domain.enums import ClearedStatus, Direction, ImportAction
from txnsync.domain.models import NewTransaction, TokenDetails, Transfer, append_hash_to_memo
from txnsync.exceptions import AmountOverflowError, ConfigurationError, ExternalServiceError
from txnsync.infra.ynab.client import YNABClient
from txnsync.reconcile.ignore_list import IgnoreList
from txnsync.reconcile.prompts import Prompter
from txnsync.reconcile.summary import ReconciliationSummary

logger = logging.getLogger(__name__)

# Transfers below 10**(decimals - DUST_PRECISION) base units (0.01 of a token) are never offered.
DUST_PRECISION = 2

IMPORT_CHOICES: list[tuple[str, ImportAction]] = [
    ("Create", ImportAction.CREATE),
    ("Skip (for now)", ImportAction.SKIP),
    ("Ignore (skip permanently)", ImportAction.IGNORE),
]


def format_time(transfer: Transfer) -> str:
    return transfer.execution_time.strftime("%Y-%m-%dT%H:%M:%SZ")


class TransferImporter:
    """Walks the transfers left over after matching and asks what to do with each one."""

    def __init__(
        self,
        ynab: YNABClient,
        prompter: Prompter,
        token_details: TokenDetails,
        wallet_address: str,
        dry_run: bool = False,
        today: date | None = None,
    ) -> None:
        if token_details.decimals < DUST_PRECISION:
            raise ConfigurationError(
                f"tokens with fewer than {DUST_PRECISION} decimals ({token_details.decimals}) are not supported"
            )
        self._ynab = ynab
        self._prompter = prompter
        self._token = token_details
        self._wallet = wallet_address.lower()
        self._dry_run = dry_run
        self._today = today
        self.minimum_amount = 10 ** (token_details.decimals - DUST_PRECISION)

    async def process(
        self,
        budget_id: str,
        account_id: str,
        transfers: list[Transfer],
        ignore_list: IgnoreList,
        summary: ReconciliationSummary,
    ) -> None:
        for transfer in transfers:
            try:
                await self._process_transfer(budget_id, account_id, transfer, ignore_list, summary)
            except (ExternalServiceError, AmountOverflowError) as exc:
                summary.import_failures += 1
                logger.error("Failed to process transfer %s: %s", transfer.transaction_hash, exc)

    async def _process_transfer(
        self,
        budget_id: str,
        account_id: str,
        transfer: Transfer,
        ignore_list: IgnoreList,
        summary: ReconciliationSummary,
    ) -> None:
        if not transfer.touches(self._wallet):
            return
        if transfer.from_address.lower() == self._wallet:
            direction, counterparty = Direction.OUTBOUND, transfer.to_address
        else:
            direction, counterparty = Direction.INBOUND, transfer.from_address

        if transfer.amount is None or transfer.amount < self.minimum_amount:
            logger.debug(
                "transaction with hash '%s' and amount %s is less than the minimum (%s)",
                transfer.transaction_hash, transfer.amount, self.minimum_amount,
            )
            return

        details = self.describe(transfer, direction, counterparty)
        if self._dry_run:
            logger.info("Dry run: would offer to create a YNAB transaction for %s", details)
            return

        labels = [label for label, _ in IMPORT_CHOICES]
        action = IMPORT_CHOICES[self._prompter.select(f"Create YNAB transaction for {details}?", labels)][1]

        if action is ImportAction.SKIP:
            summary.skipped += 1
            return
        if action is ImportAction.IGNORE:
            logger.debug("Ignoring transfer %s permanently", transfer.transaction_hash)
            ignore_list.add_ignored(transfer.transaction_hash, self._today)
            summary.ignored += 1
            return

        payee = self._prompter.ask("Payee name", counterparty)
        memo = self._prompter.ask("Memo (will auto-append transaction hash)", transfer.transaction_hash)
        request = NewTransaction(
            account_id=account_id,
            date=transfer.execution_date_utc,
            amount=base_units_to_milliunits(
                transfer.amount, self._token.decimals, direction is Direction.OUTBOUND
            ),
            payee_name=payee,
            memo=append_hash_to_memo(memo, transfer.transaction_hash),
            cleared=ClearedStatus.UNCLEARED,
        )
        created = await self._ynab.create_transaction(budget_id, request)
        ignore_list.add_processed(transfer.transaction_hash, created.id, self._today)
        summary.created += 1
        logger.info(
            "Created YNAB transaction id=%s amount=%s payee=%s",
            created.id, created.formatted_amount, created.payee,
        )

    def describe(self, transfer: Transfer, direction: Direction, counterparty: str) -> str:
        return (
            f"{direction.sign} {format_base_units(transfer.amount, self._token.decimals)} {self._token.name} "
            f"on {format_time(transfer)} {direction.value} {counterparty}"
        )
