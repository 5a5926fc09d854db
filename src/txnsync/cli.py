"""Sync an Etherscan token-transfer export with a YNAB account.

Usage:
    ynab-txn-sync --csv-file=export.csv --wallet-address=0x... --ynab-access-token=... [--dry-run] [--debug]

Every flag can also come from the environment or a .env file (WALLET_ADDRESS, YNAB_ACCESS_TOKEN, ...).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dependency_injector import providers

from txnsync.config import Settings
from txnsync.container import Container
from txnsync.exceptions import ConfigurationError, TransferParseError, TxnSyncError, UserCanceledError
from txnsync.parser.etherscan_csv import transfers_from_etherscan_csv
from txnsync.reconcile.summary import ReconciliationSummary
from txnsync.reconcile.workflow import Reconciler

logger = logging.getLogger("txnsync")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELED = 130

# flag dest -> Settings field
_OVERRIDES = {
    "wallet_address": "wallet_address",
    "token_address": "token_address",
    "rpc_url": "rpc_url",
    "ynab_access_token": "ynab_access_token",
    "account_name": "account_name",
    "ignore_list": "ignore_list_path",
    "lookback_days": "lookback_days",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ynab-txn-sync",
        description="Match on-chain token transfers to uncleared YNAB transactions.",
    )
    parser.add_argument("--csv-file", required=True, help="Etherscan token transfer CSV export")
    parser.add_argument("--wallet-address", help="wallet whose transfers are reconciled")
    parser.add_argument("--token-address", help="ERC20 contract address (default: USDC on Base)")
    parser.add_argument("--rpc-url", help="EVM JSON-RPC endpoint used to read token metadata")
    parser.add_argument("--ynab-access-token", help="YNAB personal access token")
    parser.add_argument("--account-name", help="YNAB account holding the token")
    parser.add_argument("--ignore-list", help="path of the YAML ignore list")
    parser.add_argument("--lookback-days", type=int, help="how far back to fetch uncleared transactions")
    parser.add_argument("--dry-run", action="store_true", help="log what would change without touching YNAB")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def resolve_settings(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    """Layer command-line flags over environment settings and check the required ones."""
    base = base or Settings()
    update = {field: getattr(args, dest) for dest, field in _OVERRIDES.items() if getattr(args, dest) is not None}
    if args.dry_run:
        update["dry_run"] = True
    if args.debug:
        update["debug"] = True
    settings = base.model_copy(update=update)

    if not settings.wallet_address:
        raise ConfigurationError("--wallet-address argument is required")
    if not settings.ynab_access_token:
        raise ConfigurationError("--ynab-access-token argument is required")
    return settings


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def sync(csv_file: Path, container: Container) -> ReconciliationSummary:
    settings = container.settings()
    if settings.dry_run:
        logger.info("Running in dry-run mode; no changes will be made to YNAB")

    try:
        csv_content = csv_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"failed to open CSV file: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise TransferParseError(f"CSV file {csv_file} is not valid UTF-8: {exc}") from exc

    async with container.http_client() as http:
        logger.info("Retrieving token details for contract '%s'", settings.token_address)
        token_details = await container.token_details_service(http_client=http).get_token_details(
            settings.token_address
        )
        if token_details is None:
            raise ConfigurationError(f"no token details found for contract '{settings.token_address}'")

        transfers = transfers_from_etherscan_csv(csv_content, token_details)
        logger.info("Parsed %d transfers", len(transfers))
        logger.info(
            "Synchronizing transactions for contract '%s' for wallet '%s'",
            settings.token_address, settings.wallet_address,
        )

        reconciler = Reconciler(
            ynab=container.ynab_client(http_client=http),
            prompter=container.prompter(),
            ignore_store=container.ignore_store(),
            token_details=token_details,
            wallet_address=settings.wallet_address,
            account_name=settings.account_name,
            lookback_days=settings.lookback_days,
            dry_run=settings.dry_run,
        )
        return await reconciler.run(transfers)


def run(argv: list[str] | None = None, container: Container | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ConfigurationError as exc:
        configure_logging(args.debug)
        logger.error("Initialization failed: %s", exc)
        return EXIT_FAILED

    configure_logging(settings.debug)
    if settings.debug:
        logger.debug("Running in debug mode; more detailed logging will be provided")

    if container is None:
        container = Container()
    container.settings.override(providers.Object(settings))
    try:
        asyncio.run(sync(Path(args.csv_file), container))
    except UserCanceledError:
        logger.warning("Canceled by user")
        return EXIT_CANCELED
    except TxnSyncError as exc:
        logger.error("Synchronization failed: %s", exc)
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(run())
