from __future__ import annotations

import asyncio
from typing import Any, Optional

from aiohttp import web
from aiohttp.test_utils import TestServer

from weightrack.errors import NetworkError
from weightrack.models import Notification, WeightEntry


class RecordingNotifier:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.notifications]


class FakeStore:
    """In-memory weight store that records every call made to it."""

    def __init__(self) -> None:
        self.rows: dict[str, tuple[str, float]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Exception] = {}
        self.gate: Optional[asyncio.Event] = None
        self._next_id = 1

    def seed(self, date: str, weight: float) -> str:
        entry_id = f"id{self._next_id}"
        self._next_id += 1
        self.rows[entry_id] = (date, weight)
        return entry_id

    def calls_of(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    async def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.failures:
            raise self.failures[name]

    async def list_entries(self) -> list[WeightEntry]:
        await self._enter("list")
        return [WeightEntry(id=key, date=date, weight=weight) for key, (date, weight) in self.rows.items()]

    async def create_entry(self, weight: float, date: str) -> None:
        await self._enter("create", weight, date)
        self.seed(date, weight)

    async def update_entry(self, entry_id: str, weight: float, date: str) -> None:
        await self._enter("update", entry_id, weight, date)
        if entry_id not in self.rows:
            raise NetworkError("unknown id")
        self.rows[entry_id] = (date, weight)

    async def delete_entry(self, entry_id: str) -> None:
        await self._enter("delete", entry_id)
        self.rows.pop(entry_id, None)


class FakeWeightApi:
    """aiohttp fake of the remote weight store, served on a local port."""

    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []
        self.requests: list[tuple[str, str, Any]] = []
        self.fail_status: Optional[int] = None
        self.raw_list_body: Optional[str | bytes] = None
        self.fail_body: Optional[bytes] = None
        self.delay = 0.0
        self._next_id = 1
        app = web.Application(middlewares=[self._middleware])
        app.router.add_get("/", self._list)
        app.router.add_post("/", self._create)
        app.router.add_patch("/{entry_id}", self._update)
        app.router.add_delete("/{entry_id}", self._delete)
        self.server = TestServer(app)

    async def start(self) -> str:
        await self.server.start_server()
        return str(self.server.make_url("/"))

    async def close(self) -> None:
        await self.server.close()

    def add(self, weight: float, date: str) -> dict[str, Any]:
        entry = {"_id": f"{self._next_id:024x}", "weight": weight, "date": f"{date}T00:00:00.000Z"}
        self._next_id += 1
        self.entries.append(entry)
        return entry

    @web.middleware
    async def _middleware(self, request: web.Request, handler):
        body = await request.json() if request.can_read_body else None
        self.requests.append((request.method, request.path, body))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_status is not None and self.fail_body is not None:
            return web.Response(body=self.fail_body, status=self.fail_status, content_type="text/plain", charset="utf-8")
        if self.fail_status is not None:
            return web.json_response({"message": "boom"}, status=self.fail_status)
        return await handler(request)

    def _find(self, entry_id: str) -> dict[str, Any]:
        for entry in self.entries:
            if entry["_id"] == entry_id:
                return entry
        raise web.HTTPNotFound(text="Entry not found")

    async def _list(self, request: web.Request) -> web.StreamResponse:
        if isinstance(self.raw_list_body, bytes):
            return web.Response(body=self.raw_list_body, content_type="application/json", charset="utf-8")
        if self.raw_list_body is not None:
            return web.Response(text=self.raw_list_body, content_type="application/json")
        return web.json_response(self.entries)

    async def _create(self, request: web.Request) -> web.StreamResponse:
        body = await request.json()
        entry = self.add(body["weight"], body["date"])
        return web.json_response(entry, status=201)

    async def _update(self, request: web.Request) -> web.StreamResponse:
        entry = self._find(request.match_info["entry_id"])
        body = await request.json()
        entry.update(weight=body["weight"], date=f"{body['date']}T00:00:00.000Z")
        return web.json_response(entry)

    async def _delete(self, request: web.Request) -> web.StreamResponse:
        entry = self._find(request.match_info["entry_id"])
        self.entries.remove(entry)
        return web.json_response({"message": "Deleted"})
