from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

from shelf_alerts.errors import DeliverySinkFailure, PolicyUnavailable
from shelf_alerts.models import InventoryItem, NotificationEntry, SchedulingPolicy

NOW = datetime(2026, 3, 10, 7, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def item(item_id: str, days: int | None, quantity: int = 1, name: str | None = None) -> InventoryItem:
    expires_on = None if days is None else (TODAY + timedelta(days=days)).isoformat()
    return InventoryItem(id=item_id, name=name or f"Product {item_id}", quantity=quantity, expires_on=expires_on)


def on(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class FakeInventory:
    def __init__(self, items: list[InventoryItem] | None = None) -> None:
        self.items = list(items or [])

    def get_items(self) -> list[InventoryItem]:
        return [i for i in self.items if i.quantity > 0]


class FakePreferences:
    def __init__(self, policy: SchedulingPolicy | None = None, fail: bool = False) -> None:
        self.policy = policy or SchedulingPolicy()
        self.fail = fail
        self.callbacks = []

    def get_policy(self) -> SchedulingPolicy:
        if self.fail:
            raise PolicyUnavailable("preferences backend offline")
        return self.policy

    def on_policy_changed(self, callback) -> None:
        self.callbacks.append(callback)

    async def change(self, policy: SchedulingPolicy) -> None:
        self.policy = policy
        for callback in self.callbacks:
            await callback(policy)


class FakeSink:
    def __init__(self, fail_on: set[str] | None = None, fail_cancel: bool = False) -> None:
        self.pending: dict[str, NotificationEntry] = {}
        self.delivered: list[NotificationEntry] = []
        self.log: list[tuple[str, str]] = []
        self.fail_on = fail_on or set()
        self.fail_cancel = fail_cancel
        self.action_callbacks = []
        self.delivered_callbacks = []

    async def schedule(self, entry: NotificationEntry) -> None:
        await asyncio.sleep(0)
        if entry.identity in self.fail_on:
            raise DeliverySinkFailure(entry.identity, "platform rejected request")
        self.log.append(("schedule", entry.identity))
        self.pending[entry.identity] = entry

    async def cancel(self, identities: list[str]) -> None:
        await asyncio.sleep(0)
        if self.fail_cancel:
            raise DeliverySinkFailure(",".join(identities), "platform rejected request")
        for identity in identities:
            self.log.append(("cancel", identity))
            self.pending.pop(identity, None)

    async def list_pending(self) -> list[NotificationEntry]:
        return list(self.pending.values())

    async def list_delivered(self) -> list[NotificationEntry]:
        return list(self.delivered)

    def on_user_action(self, callback) -> None:
        self.action_callbacks.append(callback)

    def on_delivered(self, callback) -> None:
        self.delivered_callbacks.append(callback)

    async def deliver(self, identity: str) -> None:
        entry = self.pending[identity]
        if not entry.repeats:
            del self.pending[identity]
            self.delivered.insert(0, entry)
        for callback in self.delivered_callbacks:
            await callback(entry)

    async def tap(self, action_id: str, entry: NotificationEntry):
        results = []
        for callback in self.action_callbacks:
            results.append(await callback(action_id, entry.content.payload))
        return results


class FakePermissions:
    def __init__(self, status: str = "notDetermined") -> None:
        self.status = status
        self.prompt_calls = 0
        self.answer: asyncio.Future | None = None

    async def current_status(self) -> str:
        return self.status

    async def prompt(self) -> str:
        self.prompt_calls += 1
        self.answer = asyncio.get_running_loop().create_future()
        result = await self.answer
        self.status = result
        return result

    def answer_with(self, state: str) -> None:
        self.answer.set_result(state)


class RecordingConsumer:
    def __init__(self) -> None:
        self.commands = []

    async def handle(self, command):
        self.commands.append(command)
        return None
