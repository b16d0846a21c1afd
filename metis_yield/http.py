from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)

RETRYABLE = (httpx.HTTPError, httpx.ConnectError, httpx.ReadTimeout)


class HttpClient:
    def __init__(
        self,
        timeout: float = 15.0,
        retry_attempts: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._retry_attempts = max(1, retry_attempts)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(RETRYABLE),
        )

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        logger.debug(f"HTTP GET {url} params={params}")
        async for attempt in self._retrying():
            with attempt:
                resp = await self._client.get(url, params=params, headers=headers)
                resp.raise_for_status()
        return resp

    async def post(self, url: str, json: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        logger.debug(f"HTTP POST {url} json_keys={list(json.keys()) if json else None}")
        async for attempt in self._retrying():
            with attempt:
                resp = await self._client.post(url, json=json, headers=headers)
                resp.raise_for_status()
        return resp

    async def aclose(self) -> None:
        await self._client.aclose()
