"""Tests for the Reconciler workflow against an in-memory ledger and scripted prompts."""

from datetime import date

import pytest

from txnsync.domain.models import Account, Budget, LedgerEntry, NewTransaction, append_hash_to_memo
from txnsync.exceptions import ConfigurationError, ExternalServiceError, IgnoreListError, UserCanceledError
from txnsync.reconcile.ignore_list import IgnoreList, IgnoreListFile
from txnsync.reconcile.prompts import Prompter
from txnsync.reconcile.workflow import SKIP_MATCH, Reconciler

ACCOUNT_NAME = "Base USDC Hot Storage"
TODAY = date(2025, 12, 3)


class FakeLedger:
    """Just enough of YNABClient, backed by dicts."""

    def __init__(self, entries: list[LedgerEntry], budgets: list[Budget] | None = None) -> None:
        self.budgets = budgets if budgets is not None else [Budget(id="b1", name="Personal")]
        self.accounts = [Account(id="a1", name=ACCOUNT_NAME), Account(id="a2", name="Checking")]
        self.entries = {e.id: e for e in entries}
        self.created: list[NewTransaction] = []
        self.since_dates: list[date | None] = []
        self.fail_settle_for: set[str] = set()

    async def get_budgets(self) -> list[Budget]:
        return self.budgets

    async def get_accounts(self, budget_id: str) -> list[Account]:
        return self.accounts

    async def get_transactions(self, budget_id, account_id, since_date=None) -> list[LedgerEntry]:
        self.since_dates.append(since_date)
        return list(self.entries.values())

    async def mark_cleared_and_append_memo(self, budget_id, transaction_id, tx_hash) -> None:
        if transaction_id in self.fail_settle_for:
            raise ExternalServiceError("ynab API returned status 500 on PUT")
        entry = self.entries[transaction_id]
        self.entries[transaction_id] = entry.model_copy(
            update={"memo": append_hash_to_memo(entry.memo, tx_hash), "cleared": True}
        )

    async def create_transaction(self, budget_id, request: NewTransaction) -> LedgerEntry:
        self.created.append(request)
        return LedgerEntry(id=f"new-{len(self.created)}", amount=request.amount, date=request.date)


class ScriptedPrompter(Prompter):
    """Replays menu choices in order; an exception instance in the script is raised instead."""

    def __init__(self, selections=()) -> None:
        self.selections = list(selections)
        self.select_calls: list[tuple[str, list[str]]] = []

    def select(self, label: str, items: list[str]) -> int:
        self.select_calls.append((label, items))
        choice = self.selections.pop(0)
        if isinstance(choice, BaseException):
            raise choice
        return choice

    def ask(self, label: str, default: str = "") -> str:
        return default


@pytest.fixture()
def store(tmp_path):
    return IgnoreListFile(tmp_path / "transaction_hash.ignorelist")


def _entry(entry_id: str, amount: int, day: date = date(2025, 12, 1), memo: str = "") -> LedgerEntry:
    return LedgerEntry(id=entry_id, amount=amount, date=day, payee="Coffee", memo=memo)


def _reconciler(ledger, prompter, store, usdc, wallet="0xabc", dry_run=False) -> Reconciler:
    return Reconciler(
        ynab=ledger,
        prompter=prompter,
        ignore_store=store,
        token_details=usdc,
        wallet_address=wallet,
        account_name=ACCOUNT_NAME,
        dry_run=dry_run,
        today=TODAY,
    )


class TestEndToEnd:
    async def test_unique_match_is_settled_and_recorded(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000, memo="coffee")])
        transfer = make_transfer(
            amount=1_000_000, at="2025-12-01 03:00:00", from_address="0xABC", to_address="0xdef", tx_hash="0xh1"
        )
        prompter = ScriptedPrompter()

        summary = await _reconciler(ledger, prompter, store, usdc).run([transfer])

        assert summary.matched == 1
        assert summary.unmatched == 0
        settled = ledger.entries["t1"]
        assert settled.cleared is True
        assert settled.memo == "coffee; transaction hash: 0xh1"
        assert settled.memo.count("0xh1") == 1
        assert prompter.select_calls == []

        saved = store.load()
        assert saved.contains("0xh1")
        assert saved.entries()[0].reason == "Processed for transaction ID t1 on 2025-12-03"

    async def test_fetches_lookback_window(self, store, usdc):
        ledger = FakeLedger([])
        await _reconciler(ledger, ScriptedPrompter(), store, usdc).run([])
        assert ledger.since_dates == [date(2025, 11, 26)]

    async def test_cleared_entries_not_matched(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000).model_copy(update={"cleared": True})])
        transfer = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", to_address="0xdef")
        prompter = ScriptedPrompter([1])  # skip when offered for import

        summary = await _reconciler(ledger, prompter, store, usdc).run([transfer])

        assert summary.matched == 0
        assert summary.skipped == 1


class TestConsumption:
    async def test_second_entry_finds_nothing(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000), _entry("t2", -1000)])
        transfer = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", to_address="0xdef", tx_hash="0xh1")

        summary = await _reconciler(ledger, ScriptedPrompter(), store, usdc).run([transfer])

        assert summary.matched == 1
        assert summary.unmatched == 1
        assert ledger.entries["t1"].cleared is True
        assert ledger.entries["t2"].cleared is False


class TestDisambiguation:
    def _two_candidates(self, make_transfer):
        later = make_transfer(at="2025-12-01 18:00:00", from_address="0xabc", to_address="0xd1", tx_hash="0xlate")
        earlier = make_transfer(at="2025-11-30 09:00:00", from_address="0xabc", to_address="0xd2", tx_hash="0xearly")
        return [later, earlier]

    async def test_user_picks_candidate(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000)])
        # choose the later transfer, then skip the other one at import
        prompter = ScriptedPrompter([2, 1])

        summary = await _reconciler(ledger, prompter, store, usdc).run(self._two_candidates(make_transfer))

        label, items = prompter.select_calls[0]
        assert "Multiple transfers matched" in label
        assert items == [
            SKIP_MATCH,
            "-1 USDC on 2025-11-30T09:00:00Z (0xearly)",
            "-1 USDC on 2025-12-01T18:00:00Z (0xlate)",
        ]
        assert ledger.entries["t1"].memo == "transaction hash: 0xlate"
        assert summary.matched == 1
        assert summary.skipped == 1
        assert "to 0xd2" in prompter.select_calls[1][0]

    async def test_skip_match_leaves_entry_unmatched(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000)])
        prompter = ScriptedPrompter([0, 1, 1])

        summary = await _reconciler(ledger, prompter, store, usdc).run(self._two_candidates(make_transfer))

        assert summary.matched == 0
        assert summary.unmatched == 1
        assert summary.skipped == 2
        assert ledger.entries["t1"].cleared is False

    async def test_cancel_aborts_run_and_persists_registry(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t0", -2000), _entry("t1", -1000)])
        unique = make_transfer(amount=2_000_000, at="2025-12-01 01:00:00", from_address="0xabc", tx_hash="0xfirst")
        prompter = ScriptedPrompter([UserCanceledError()])

        with pytest.raises(UserCanceledError):
            await _reconciler(ledger, prompter, store, usdc).run([unique] + self._two_candidates(make_transfer))

        assert store.load().contains("0xfirst")


class TestRegistry:
    async def test_known_hashes_removed_before_matching(self, store, usdc, make_transfer):
        known = IgnoreList()
        known.add_ignored("0xH1", TODAY)
        store.save(known)
        ledger = FakeLedger([_entry("t1", -1000)])
        transfer = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", tx_hash="0xh1")
        prompter = ScriptedPrompter()

        summary = await _reconciler(ledger, prompter, store, usdc).run([transfer])

        assert summary.unmatched == 1
        assert ledger.entries["t1"].cleared is False
        assert prompter.select_calls == []

    async def test_settle_failure_consumes_but_does_not_record(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000), _entry("t2", 5000)])
        ledger.fail_settle_for.add("t1")
        failing = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", to_address="0xdef", tx_hash="0xh1")
        incoming = make_transfer(amount=5_000_000, at="2025-12-01 04:00:00", from_address="0xdef", to_address="0xabc", tx_hash="0xh2")
        prompter = ScriptedPrompter()

        summary = await _reconciler(ledger, prompter, store, usdc).run([failing, incoming])

        assert summary.matched == 2
        assert summary.settle_failures == 1
        saved = store.load()
        assert not saved.contains("0xh1")
        assert saved.contains("0xh2")
        # consumed, so never offered for import
        assert prompter.select_calls == []

    async def test_import_ignore_choice_persisted(self, store, usdc, make_transfer):
        ledger = FakeLedger([])
        transfer = make_transfer(from_address="0xspammer", to_address="0xabc", tx_hash="0xspam")

        summary = await _reconciler(ledger, ScriptedPrompter([2]), store, usdc).run([transfer])

        assert summary.ignored == 1
        assert store.load().entries()[0].reason == "Marked as ignored on 2025-12-03"

    async def test_save_failure_surfaces(self, tmp_path, usdc, make_transfer):
        store = IgnoreListFile(tmp_path / "missing" / "transaction_hash.ignorelist")
        ledger = FakeLedger([_entry("t1", -1000)])
        transfer = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", tx_hash="0xh1")

        with pytest.raises(IgnoreListError, match="failed to write ignore list"):
            await _reconciler(ledger, ScriptedPrompter(), store, usdc).run([transfer])

        assert ledger.entries["t1"].cleared is True

    async def test_import_create(self, store, usdc, make_transfer):
        ledger = FakeLedger([])
        transfer = make_transfer(amount=2_500_000, from_address="0xpayer", to_address="0xABC", tx_hash="0xpay")

        summary = await _reconciler(ledger, ScriptedPrompter([0]), store, usdc).run([transfer])

        assert summary.created == 1
        assert ledger.created[0].amount == 2500
        assert ledger.created[0].payee_name == "0xpayer"
        assert store.load().contains("0xpay")


class TestDryRun:
    async def test_no_mutations(self, store, usdc, make_transfer):
        ledger = FakeLedger([_entry("t1", -1000)])
        matched = make_transfer(at="2025-12-01 03:00:00", from_address="0xabc", tx_hash="0xh1")
        leftover = make_transfer(amount=7_000_000, to_address="0xabc", tx_hash="0xh2")
        prompter = ScriptedPrompter()

        summary = await _reconciler(ledger, prompter, store, usdc, dry_run=True).run([matched, leftover])

        assert summary.matched == 1
        assert ledger.entries["t1"].cleared is False
        assert ledger.created == []
        assert prompter.select_calls == []
        assert not store.path.exists()


class TestResolveAccount:
    async def test_single_budget(self, store, usdc):
        reconciler = _reconciler(FakeLedger([]), ScriptedPrompter(), store, usdc)
        budget, account_id = await reconciler.resolve_account()
        assert budget.id == "b1"
        assert account_id == "a1"

    async def test_several_budgets_prompt(self, store, usdc):
        ledger = FakeLedger([], budgets=[Budget(id="b1", name="Personal"), Budget(id="b2", name="Business")])
        prompter = ScriptedPrompter([1])

        budget, _ = await _reconciler(ledger, prompter, store, usdc).resolve_account()

        assert budget.id == "b2"
        assert prompter.select_calls[0][1] == ["Personal (b1)", "Business (b2)"]

    async def test_no_budgets(self, store, usdc):
        reconciler = _reconciler(FakeLedger([], budgets=[]), ScriptedPrompter(), store, usdc)
        with pytest.raises(ConfigurationError, match="no YNAB budgets"):
            await reconciler.resolve_account()

    async def test_account_missing(self, store, usdc):
        ledger = FakeLedger([])
        ledger.accounts = [Account(id="a2", name="Checking")]
        with pytest.raises(ConfigurationError, match=ACCOUNT_NAME):
            await _reconciler(ledger, ScriptedPrompter(), store, usdc).resolve_account()

    async def test_configuration_error_still_saves_registry(self, store, usdc):
        ledger = FakeLedger([], budgets=[])
        with pytest.raises(ConfigurationError):
            await _reconciler(ledger, ScriptedPrompter(), store, usdc).run([])
        assert store.path.exists()
