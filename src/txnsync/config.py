from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ynab_access_token: str = ""
    ynab_api_url: str = "https://api.ynab.com/v1"
    wallet_address: str = ""
    token_address: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"  # USDC on Base
    rpc_url: str = "https://mainnet.base.org"
    account_name: str = "Base USDC Hot Storage"
    ignore_list_path: str = "transaction_hash.ignorelist"
    lookback_days: int = 7
    http_rate_per_second: float = 2.0
    http_timeout: float = 30.0
    dry_run: bool = False
    debug: bool = False

    class Config:
        env_file = ".env"
