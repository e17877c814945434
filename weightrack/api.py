from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from .errors import NetworkError, ServerError
from .models import WeightEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class WeightApiClient:
    """Typed client for the remote weight store.

    Every call is bounded by ``timeout`` seconds. Transport failures surface as
    ``NetworkError`` and non-2xx responses as ``ServerError``; raw aiohttp
    exceptions never leave this class.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _entry_url(self, entry_id: str) -> str:
        return f"{self.base_url}/{quote(entry_id, safe='')}"

    async def _request(self, method: str, url: str, payload: Optional[dict[str, Any]] = None) -> bytes:
        session = await self.connect()
        logger.debug("%s %s %s", method, url, payload if payload is not None else "")
        try:
            async with session.request(method, url, json=payload) as response:
                body = await response.read()
                if not 200 <= response.status < 300:
                    logger.warning("%s %s failed with HTTP %s", method, url, response.status)
                    detail = body.decode("utf-8", errors="replace").strip()[:200]
                    raise ServerError(
                        f"HTTP {response.status}: {detail or response.reason}",
                        status=response.status,
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("%s %s failed: %r", method, url, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

    async def list_entries(self) -> list[WeightEntry]:
        body = await self._request("GET", f"{self.base_url}/")
        try:
            raw = json.loads(body)
        except ValueError as exc:
            # UnicodeDecodeError included
            raise ServerError("Weight list is not valid JSON") from exc
        if not isinstance(raw, list):
            raise ServerError("Weight list is not a JSON array")
        return [WeightEntry.from_api(item) for item in raw]

    async def create_entry(self, weight: float, date: str) -> None:
        await self._request("POST", f"{self.base_url}/", {"weight": weight, "date": date})

    async def update_entry(self, entry_id: str, weight: float, date: str) -> None:
        await self._request("PATCH", self._entry_url(entry_id), {"weight": weight, "date": date})

    async def delete_entry(self, entry_id: str) -> None:
        await self._request("DELETE", self._entry_url(entry_id))
