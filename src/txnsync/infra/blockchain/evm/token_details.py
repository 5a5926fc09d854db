"""ERC20 token metadata via JSON-RPC eth_call against an EVM node."""

import logging

import httpx

from txnsync.domain.models import TokenDetails
from txnsync.exceptions import ExternalServiceError
from txnsync.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)

DECIMALS_SELECTOR = "0x313ce567"  # decimals()
NAME_SELECTOR = "0x06fdde03"  # name()

MAX_DECIMALS = 2**63 - 1
WORD_SIZE = 32


class RPCTokenDetailsService:
    """Reads decimals() and name() from a token contract."""

    def __init__(self, rpc_url: str, http_client: RateLimitedClient) -> None:
        self._rpc_url = rpc_url
        self._http = http_client

    async def _eth_call(self, contract_address: str, data: str) -> str:
        """Execute eth_call at the latest block and return the raw hex result."""
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": contract_address, "data": data}, "latest"],
        }
        try:
            resp = await self._http.post(self._rpc_url, json=payload)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"rpc call: {exc}") from exc

        if resp.status_code != 200:
            raise ExternalServiceError(f"rpc call: node returned HTTP status {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise ExternalServiceError(f"decode rpc response: {exc}") from exc

        if not isinstance(body, dict):
            raise ExternalServiceError(f"decode rpc response: expected a JSON object, got {type(body).__name__}")

        error = body.get("error")
        if isinstance(error, dict):
            raise ExternalServiceError(f"rpc error: {error.get('code')} {error.get('message')}")
        if error:
            raise ExternalServiceError(f"rpc error: {error}")

        return body.get("result") or ""

    async def get_token_details(self, contract_address: str) -> TokenDetails | None:
        """Return the token's decimals and name, or None when the contract reports no decimals."""
        raw = _decode_hex(await self._eth_call(contract_address, DECIMALS_SELECTOR))
        decimals = int.from_bytes(raw, "big") if raw else 0
        if decimals == 0:
            logger.debug("Contract %s returned no decimals", contract_address)
            return None
        if decimals > MAX_DECIMALS:
            raise ExternalServiceError(f"decimals value too large: {decimals}")

        return TokenDetails(decimals=decimals, name=await self._get_name(contract_address))

    async def _get_name(self, contract_address: str) -> str:
        try:
            raw = _decode_hex(await self._eth_call(contract_address, NAME_SELECTOR))
            return _decode_abi_string(raw)
        except (ExternalServiceError, UnicodeDecodeError) as exc:
            logger.warning("Could not read name() of %s: %s", contract_address, exc)
            return ""


def _decode_hex(result: str) -> bytes:
    hex_str = result[2:] if result.startswith("0x") else result
    if len(hex_str) % 2 == 1:
        hex_str = "0" + hex_str
    try:
        return bytes.fromhex(hex_str)
    except ValueError as exc:
        raise ExternalServiceError(f"decode hex result: {exc}") from exc


def _decode_abi_string(raw: bytes) -> str:
    """Decode an ABI-encoded dynamic string; a lone 32-byte word is read as bytes32."""
    if not raw:
        return ""
    if len(raw) == WORD_SIZE:
        return raw.rstrip(b"\x00").decode("utf-8")
    if len(raw) < 2 * WORD_SIZE:
        raise ExternalServiceError(f"decode name result: {len(raw)} bytes is too short for an ABI string")

    offset = int.from_bytes(raw[:WORD_SIZE], "big")
    length = int.from_bytes(raw[offset:offset + WORD_SIZE], "big")
    start = offset + WORD_SIZE
    if start + length > len(raw):
        raise ExternalServiceError("decode name result: string length exceeds returned data")
    return raw[start:start + length].decode("utf-8")
