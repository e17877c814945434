from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Optional, Protocol

from .errors import NetworkError, ServerError, ValidationError
from .formatting import to_input_date
from .models import FormState, Notification, WeightEntry

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another request is still running, please wait."


class Notifier(Protocol):
    async def notify(self, notification: Notification) -> None: ...


class WeightStore(Protocol):
    async def list_entries(self) -> list[WeightEntry]: ...

    async def create_entry(self, weight: float, date: str) -> None: ...

    async def update_entry(self, entry_id: str, weight: float, date: str) -> None: ...

    async def delete_entry(self, entry_id: str) -> None: ...


class EntryController:
    """Owns the entry collection and the form, and keeps them in sync with the store.

    The collection only ever changes through ``refresh``: mutations are sent to
    the store and then the whole list is fetched again. Transport and server
    errors are turned into error notifications and never propagate.
    """

    def __init__(self, store: WeightStore, notifier: Notifier):
        self.store = store
        self.notifier = notifier
        self._entries: tuple[WeightEntry, ...] = ()
        self._form = FormState()
        self._lock = asyncio.Lock()

    @property
    def entries(self) -> tuple[WeightEntry, ...]:
        return self._entries

    @property
    def form(self) -> FormState:
        return self._form

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def find(self, entry_id: str) -> Optional[WeightEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def _notify(self, notification: Notification) -> None:
        logger.info("%s: %s", notification.kind.value, notification.message)
        await self.notifier.notify(notification)

    async def refresh(self) -> bool:
        try:
            entries = await self.store.list_entries()
        except (NetworkError, ServerError) as exc:
            await self._notify(Notification.error(f"Could not load weight entries: {exc}"))
            return False
        self._entries = tuple(entries)
        logger.debug("Loaded %d weight entries", len(self._entries))
        return True

    def update_form(self, weight: Optional[str] = None, date: Optional[str] = None) -> None:
        if weight is not None:
            self._form.weight = weight.strip()
        if date is not None:
            self._form.date = to_input_date(date) if date.strip() else ""

    def begin_edit(self, entry: WeightEntry) -> None:
        self._form = FormState(
            weight=str(entry.weight),
            date=to_input_date(entry.date),
            editing_id=entry.id,
        )

    def cancel_edit(self) -> None:
        self._form.reset()

    async def submit(self) -> bool:
        try:
            weight, entry_date = self._form.payload()
        except ValidationError as exc:
            # Incomplete forms never reach the network and stay silent
            logger.debug("Submission skipped: %s", exc)
            return False
        if self._lock.locked():
            await self._notify(Notification.error(BUSY_MESSAGE))
            return False
        async with self._lock:
            submitted = replace(self._form)
            editing_id = submitted.editing_id
            try:
                if editing_id is None:
                    await self.store.create_entry(weight, entry_date)
                else:
                    await self.store.update_entry(editing_id, weight, entry_date)
            except (NetworkError, ServerError) as exc:
                action = "add" if editing_id is None else "update"
                await self._notify(Notification.error(f"Could not {action} weight entry: {exc}"))
                return False
            # A begin_edit or new input made while the request was in flight is kept
            if self._form == submitted:
                self._form = FormState()
            await self.refresh()
        verb = "added" if editing_id is None else "updated"
        await self._notify(Notification.success(f"Weight entry {verb} successfully!"))
        return True

    async def remove(self, entry_id: str) -> bool:
        if self._lock.locked():
            await self._notify(Notification.error(BUSY_MESSAGE))
            return False
        async with self._lock:
            try:
                await self.store.delete_entry(entry_id)
            except (NetworkError, ServerError) as exc:
                await self._notify(Notification.error(f"Could not delete weight entry: {exc}"))
                return False
            await self._notify(Notification.success("Weight entry deleted."))
            await self.refresh()
        return True


class ControllerRegistry:
    """Hands out one controller per user, all backed by the same store."""

    def __init__(self, store: WeightStore, notifier_factory: Callable[[int], Notifier]):
        self.store = store
        self.notifier_factory = notifier_factory
        self._controllers: dict[int, EntryController] = {}

    def get(self, user_id: int) -> EntryController:
        controller = self._controllers.get(user_id)
        if controller is None:
            controller = EntryController(self.store, self.notifier_factory(user_id))
            self._controllers[user_id] = controller
        return controller

    def __len__(self) -> int:
        return len(self._controllers)
