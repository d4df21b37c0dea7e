from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp

log = logging.getLogger(__name__)


class HttpClientFactory:
    def __init__(self, timeout: float = 10.0, user_agent: str | None = None) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._user_agent = user_agent or "dex-arbitrage/0.1"
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session and not self._session.closed:
            yield self._session
            return

        async with self._lock:
            if not self._session or self._session.closed:
                headers = {
                    "User-Agent": self._user_agent,
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "Connection": "keep-alive",
                }
                connector = aiohttp.TCPConnector(ssl=True, limit=20)
                self._session = aiohttp.ClientSession(
                    timeout=self._timeout,
                    headers=headers,
                    connector=connector,
                )
        try:
            yield self._session  # type: ignore[misc]
        finally:
            ...

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def post_json(self, url: str, payload: Any, max_retries: int = 3) -> Any:
        """
        POST a JSON body and return the decoded JSON response.
        Handles rate limiting (429) with exponential backoff retry.

        Args:
            url: URL to request
            payload: JSON-serialisable request body
            max_retries: Maximum attempts while the endpoint keeps answering 429
        """
        log.debug("POST %s payload: %s", url, payload)
        retry_count = 0
        async with self.session() as session:
            while retry_count < max_retries:
                async with session.post(url, json=payload) as response:
                    if response.status == 429:
                        try:
                            retry_after = int(response.headers.get("Retry-After", "1"))
                        except (ValueError, TypeError):
                            retry_after = 1
                        wait_time = min(retry_after * (2 ** retry_count), 10)  # Max 10 seconds
                        log.warning("Rate limit exceeded (429) for %s, waiting %d seconds", url, wait_time)
                        await asyncio.sleep(wait_time)
                        retry_count += 1
                        continue
                    response.raise_for_status()
                    data = await response.json(content_type=None)
                    log.debug("Response status: %d", response.status)
                    return data
        raise aiohttp.ClientResponseError(
            request_info=None,  # type: ignore[arg-type]
            history=(),
            status=429,
            message="Rate limit exceeded after retries",
        )
