from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Protocol

import aiohttp

from dex_arbitrage.core.exceptions import RpcResponseError, RpcTransportError

log = logging.getLogger(__name__)

# Provider-side throttling; the request itself is fine.
TRANSIENT_RPC_CODES = frozenset({-32005})


class JsonPoster(Protocol):
    async def post_json(self, url: str, payload: Any, max_retries: int = 3) -> Any:
        ...


class RpcClient:
    """Minimal Ethereum JSON-RPC client on top of the shared HTTP session."""

    def __init__(self, http: JsonPoster, url: str, max_retries: int = 3) -> None:
        self._http = http
        self._url = url
        self._max_retries = max_retries
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    async def call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._http.post_json(self._url, payload, max_retries=self._max_retries)
        except aiohttp.ClientResponseError as exc:
            if exc.status == 429 or exc.status >= 500:
                raise RpcTransportError(f"{method}: HTTP {exc.status}") from exc
            raise RpcResponseError(f"{method}: HTTP {exc.status}", code=exc.status) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RpcTransportError(f"{method}: {exc.__class__.__name__}: {exc}") from exc
        except ValueError as exc:
            # Gateways sometimes answer 200 with an HTML page.
            raise RpcResponseError(f"{method}: response is not JSON") from exc

        if not isinstance(response, dict):
            raise RpcResponseError(f"{method}: malformed response {response!r}")

        error = response.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            data = error.get("data") if isinstance(error, dict) else None
            if code in TRANSIENT_RPC_CODES:
                raise RpcTransportError(f"{method}: {message} (code {code})")
            log.debug("RPC error for %s: code=%s message=%s", method, code, message)
            raise RpcResponseError(f"{method}: {message}", code=code, data=data)

        if "result" not in response:
            raise RpcResponseError(f"{method}: response has neither result nor error")
        return response["result"]

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        result = await self.call("eth_call", [{"to": to, "data": "0x" + data.hex()}, block])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcResponseError(f"eth_call: unexpected result {result!r}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as exc:
            raise RpcResponseError(f"eth_call: result is not hex: {result!r}") from exc

    async def block_number(self) -> int:
        result = await self.call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError) as exc:
            raise RpcResponseError(f"eth_blockNumber: unexpected result {result!r}") from exc
