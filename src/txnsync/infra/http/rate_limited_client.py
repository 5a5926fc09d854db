import asyncio
import time
from typing import Any

import httpx


class RateLimitedClient:
    """Async HTTP client shared by the YNAB and RPC collaborators.

    Requests are spaced at least 1/rate_per_second apart. YNAB allows 200 requests per hour
    per token, so callers keep the default low.
    """

    def __init__(
        self,
        rate_per_second: float = 2.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._min_interval = 1.0 / rate_per_second
        self._last_request_time = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _wait_for_slot(self) -> None:
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def request(
        self,
        method: str,
        url: str,
        params: dict | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        await self._wait_for_slot()
        return await self._client.request(method, url, params=params, json=json, headers=headers)

    async def get(self, url: str, params: dict | None = None, headers: dict[str, str] | None = None) -> httpx.Response:
        return await self.request("GET", url, params=params, headers=headers)

    async def post(self, url: str, json: Any = None, headers: dict[str, str] | None = None) -> httpx.Response:
        return await self.request("POST", url, json=json, headers=headers)

    async def put(self, url: str, json: Any = None, headers: dict[str, str] | None = None) -> httpx.Response:
        return await self.request("PUT", url, json=json, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
