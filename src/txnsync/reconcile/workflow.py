"""Reconciler: one pass of matching uncleared YNAB transactions against wallet transfers.

    1. resolve budget + account, fetch uncleared transactions in the lookback window
    2. match each transaction against the shrinking transfer pool, settling unique matches
    3. offer the remaining wallet transfers for manual creation
    4. persist the ignore list, even if a later step failed
"""

import logging
from datetime import date, timedelta

from txnsync.accounting.units import format_base_units
from txnsync.domain.enums import Direction
from txnsync.domain.models import Budget, LedgerEntry, TokenDetails, Transfer
from txnsync.exceptions import ConfigurationError, ExternalServiceError, IgnoreListError
from txnsync.infra.ynab.client import YNABClient
from txnsync.reconcile.ignore_list import IgnoreList, IgnoreListFile
from txnsync.reconcile.importer import TransferImporter, format_time
from txnsync.reconcile.matcher import TransferPool, match_transfers
from txnsync.reconcile.prompts import Prompter
from txnsync.reconcile.summary import ReconciliationSummary

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7
SKIP_MATCH = "Skip match"


class Reconciler:
    """Owns the transfer pool and the ignore list for the duration of one run."""

    def __init__(
        self,
        ynab: YNABClient,
        prompter: Prompter,
        ignore_store: IgnoreListFile,
        token_details: TokenDetails,
        wallet_address: str,
        account_name: str,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        dry_run: bool = False,
        today: date | None = None,
    ) -> None:
        self._ynab = ynab
        self._prompter = prompter
        self._ignore_store = ignore_store
        self._token = token_details
        self._wallet = wallet_address
        self._account_name = account_name
        self._lookback_days = lookback_days
        self._dry_run = dry_run
        self._today = today
        self._importer = TransferImporter(
            ynab, prompter, token_details, wallet_address, dry_run=dry_run, today=today
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, transfers: list[Transfer]) -> ReconciliationSummary:
        """Reconcile `transfers` against YNAB. The ignore list is saved however the run ends."""
        ignore_list = self._ignore_store.load()
        try:
            summary = await self._reconcile(transfers, ignore_list)
        except BaseException:
            self._persist(ignore_list, reraise=False)
            raise
        self._persist(ignore_list, reraise=True)
        return summary

    async def resolve_account(self) -> tuple[Budget, str]:
        """Pick the budget (asking when there are several) and find the configured account in it."""
        budgets = await self._ynab.get_budgets()
        if not budgets:
            raise ConfigurationError("no YNAB budgets found; at least one budget is required")
        if len(budgets) == 1:
            budget = budgets[0]
        else:
            idx = self._prompter.select("Select a YNAB budget", [f"{b.name} ({b.id})" for b in budgets])
            budget = budgets[idx]
            logger.info("Selected budget %s (%s)", budget.name, budget.id)

        for account in await self._ynab.get_accounts(budget.id):
            if account.name == self._account_name:
                return budget, account.id
        raise ConfigurationError(f"account '{self._account_name}' not found in budget '{budget.name}'")

    async def fetch_uncleared(self, budget_id: str, account_id: str) -> list[LedgerEntry]:
        since = (self._today or date.today()) - timedelta(days=self._lookback_days)
        entries = await self._ynab.get_transactions(budget_id, account_id, since)
        uncleared = [e for e in entries if not e.cleared]
        logger.debug("Retrieved %d uncleared transactions", len(uncleared))
        for entry in uncleared:
            logger.debug("  - %s", _describe_entry(entry))
        return uncleared

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _reconcile(self, transfers: list[Transfer], ignore_list: IgnoreList) -> ReconciliationSummary:
        summary = ReconciliationSummary()
        budget, account_id = await self.resolve_account()
        entries = await self.fetch_uncleared(budget.id, account_id)

        pool = TransferPool(transfers)
        dropped = pool.discard_hashes(ignore_list.contains)
        if dropped:
            logger.info("Skipping %d transfers already in the ignore list", dropped)

        await self._match_entries(budget.id, entries, pool, ignore_list, summary)

        logger.info("Matched %d transactions", summary.matched)
        if summary.unmatched:
            logger.info(
                "Unable to match %d transactions; these may need to be manually matched "
                "or your CSV import may be out-of-date",
                summary.unmatched,
            )

        await self._importer.process(budget.id, account_id, pool.remaining(), ignore_list, summary)

        logger.info(
            "Reconciliation finished: %d matched, %d unmatched, %d failed to settle, "
            "%d created, %d ignored, %d skipped, %d failed to import",
            summary.matched, summary.unmatched, summary.settle_failures,
            summary.created, summary.ignored, summary.skipped, summary.import_failures,
        )
        return summary

    async def _match_entries(
        self,
        budget_id: str,
        entries: list[LedgerEntry],
        pool: TransferPool,
        ignore_list: IgnoreList,
        summary: ReconciliationSummary,
    ) -> None:
        for entry in entries:
            transfer = self._resolve_match(entry, pool)
            if transfer is None:
                summary.unmatched += 1
                continue

            summary.matched += 1
            pool.consume(transfer)
            logger.debug("Matched transfer of %s to transaction hash %s", _describe_entry(entry), transfer.transaction_hash)

            if self._dry_run:
                logger.info("Dry run: would mark transaction %s cleared with hash %s", entry.id, transfer.transaction_hash)
                continue

            try:
                await self._ynab.mark_cleared_and_append_memo(budget_id, entry.id, transfer.transaction_hash)
            except ExternalServiceError as exc:
                summary.settle_failures += 1
                logger.error("Failed to mark transaction ID %s as cleared: %s", entry.id, exc)
                continue
            ignore_list.add_processed(transfer.transaction_hash, entry.id, self._today)

    def _resolve_match(self, entry: LedgerEntry, pool: TransferPool) -> Transfer | None:
        """The transfer settling `entry`, or None when nothing matches or the user skips."""
        candidates = match_transfers(entry, self._wallet, self._token, pool.remaining())
        if not candidates:
            logger.info("No matching transfer of %s found", _describe_entry(entry))
            return None
        if len(candidates) == 1:
            return candidates[0]

        ordered = sorted(candidates, key=lambda t: (t.amount, t.execution_time))
        label = (
            f"Multiple transfers matched the transfer of {_describe_entry(entry)} with memo '{entry.memo}' "
            f"on {entry.date.isoformat()}; please select the correct one"
        )
        idx = self._prompter.select(label, [SKIP_MATCH] + [self._describe_candidate(t) for t in ordered])
        if idx == 0:
            logger.debug("User opted to skip matching")
            return None
        return ordered[idx - 1]

    def _describe_candidate(self, transfer: Transfer) -> str:
        sign = "-" if transfer.from_address.lower() == self._wallet.lower() else ""
        amount = format_base_units(transfer.amount, self._token.decimals)
        return f"{sign}{amount} {self._token.name} on {format_time(transfer)} ({transfer.transaction_hash})"

    def _persist(self, ignore_list: IgnoreList, reraise: bool) -> None:
        if self._dry_run:
            return
        try:
            self._ignore_store.save(ignore_list)
        except IgnoreListError as exc:
            logger.error("Failed to save ignore list: %s", exc)
            if reraise:
                raise


def _describe_entry(entry: LedgerEntry) -> str:
    return f"{entry.formatted_amount} {Direction.of(entry.is_outbound).value} {entry.payee}"
