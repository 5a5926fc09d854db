from dependency_injector import containers, providers

from txnsync.config import Settings
from txnsync.infra.blockchain.evm.token_details import RPCTokenDetailsService
from txnsync.infra.http.rate_limited_client import RateLimitedClient
from txnsync.infra.ynab.client import YNABClient
from txnsync.reconcile.ignore_list import IgnoreListFile
from txnsync.reconcile.prompts import ConsolePrompter


class Container(containers.DeclarativeContainer):
    settings = providers.Singleton(Settings)

    http_client = providers.Singleton(
        RateLimitedClient,
        rate_per_second=settings.provided.http_rate_per_second,
        timeout=settings.provided.http_timeout,
    )

    ynab_client = providers.Factory(
        YNABClient,
        access_token=settings.provided.ynab_access_token,
        http_client=http_client,
        base_url=settings.provided.ynab_api_url,
    )

    token_details_service = providers.Factory(
        RPCTokenDetailsService,
        rpc_url=settings.provided.rpc_url,
        http_client=http_client,
    )

    ignore_store = providers.Factory(
        IgnoreListFile,
        path=settings.provided.ignore_list_path,
    )

    prompter = providers.Singleton(ConsolePrompter)
