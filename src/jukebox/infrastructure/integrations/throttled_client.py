"""Shared base for upstream HTTP clients that must keep a minimum gap between requests."""

import asyncio
import logging
from typing import Any, Self

import httpx

logger = logging.getLogger(__name__)


class ThrottledHttpClient:
    """Lazily created httpx.AsyncClient with request spacing.

    Subclasses set API_BASE_URL and RATE_LIMIT_DELAY and may add headers or client
    options. All requests of one instance are serialized behind a lock, so a burst of
    callers queues up instead of tripping the upstream's limit.
    """

    API_BASE_URL = ""
    RATE_LIMIT_DELAY = 0.0
    TIMEOUT = 30.0

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float | None = None
        self._rate_limit_lock = asyncio.Lock()

    def _headers(self) -> dict[str, str]:
        return {}

    def _client_options(self) -> dict[str, Any]:
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers=self._headers(),
                timeout=self.TIMEOUT,
                **self._client_options(),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # The gap is measured from when the previous response ARRIVED, so a slow answer still
    # leaves a full RATE_LIMIT_DELAY before the next request goes out.
    async def _rate_limited_request(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Send one request once the spacing allows it.

        Raises:
            httpx.HTTPError: On network errors
        """
        async with self._rate_limit_lock:
            loop = asyncio.get_running_loop()
            if self._last_request_time is not None:
                wait = self.RATE_LIMIT_DELAY - (loop.time() - self._last_request_time)
            else:
                wait = 0.0
            if wait > 0:
                logger.debug("Throttling %s request for %.2fs", self.API_BASE_URL, wait)
                await asyncio.sleep(wait)

            client = await self._get_client()
            try:
                return await client.request(method, url, **kwargs)
            finally:
                self._last_request_time = loop.time()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
