"""
JsonStore-backed implementations of the scheduling ports.

These are the collaborators the HTTP app wires into each user's engine: the
inventory owner, the preference store, the delivery sink, the permission
provider and the domain command consumer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from shelf_alerts.errors import DeliverySinkFailure, PolicyUnavailable
from shelf_alerts.models import (
    AuthorizationState,
    DomainCommand,
    InventoryItem,
    MarkConsumed,
    NavigateToItem,
    NotificationEntry,
    NotificationPayload,
    SchedulingPolicy,
)
from shelf_alerts.ports import DeliveredCallback, PolicyCallback, UserActionCallback
from shelf_alerts.services.expiration import now_utc
from shelf_alerts.services.notifications import dispatch_due, sanitize_day_offset
from shelf_alerts.storage import JsonStore
from shelf_alerts.utils.callbacks import fire_callbacks

logger = logging.getLogger(__name__)

# Delivered history kept per user.
MAX_DELIVERED_HISTORY = 50


def _item_from_row(row: dict[str, Any]) -> InventoryItem | None:
    try:
        return InventoryItem(
            id=str(row["id"]),
            name=str(row.get("name") or ""),
            quantity=int(row.get("quantity") or 0),
            expires_on=row.get("expires_on"),
        )
    except (KeyError, TypeError, ValueError, ValidationError):
        return None


class StoreInventoryProvider:
    def __init__(self, store: JsonStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id

    def get_items(self) -> list[InventoryItem]:
        items: list[InventoryItem] = []
        for row in self.store.get_user_list("inventory", self.user_id):
            item = _item_from_row(row)
            if item is None or item.quantity <= 0:
                continue
            items.append(item)
        return items

    def get_item(self, item_id: str) -> InventoryItem | None:
        for item in self.get_items():
            if item.id == item_id:
                return item
        return None


class StorePreferenceStore:
    def __init__(self, store: JsonStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self._callbacks: list[PolicyCallback] = []

    def get_policy(self) -> SchedulingPolicy:
        try:
            pref = self.store.get_user_obj("notification_preferences", self.user_id)
        except (OSError, json.JSONDecodeError) as e:
            raise PolicyUnavailable(f"could not read preferences: {e}") from e
        if not pref:
            return SchedulingPolicy()
        try:
            return SchedulingPolicy(
                **{key: value for key, value in pref.items() if key in SchedulingPolicy.model_fields}
            )
        except ValidationError as e:
            raise PolicyUnavailable(f"stored preferences are invalid: {e}") from e

    def on_policy_changed(self, callback: PolicyCallback) -> None:
        self._callbacks.append(callback)

    async def save_policy(self, policy: SchedulingPolicy) -> SchedulingPolicy:
        """Replace the whole policy object, then notify listeners."""
        row = policy.model_dump()
        row["updated_at"] = now_utc().isoformat().replace("+00:00", "Z")
        self.store.set_user_obj("notification_preferences", self.user_id, row)
        await fire_callbacks(self._callbacks, policy)
        return policy

    async def update_policy(self, changes: dict[str, Any]) -> SchedulingPolicy:
        try:
            current = self.get_policy()
        except PolicyUnavailable as e:
            logger.warning(f"Preferences unavailable for {self.user_id}, updating from defaults: {e}")
            current = SchedulingPolicy()
        if "advance_notice_days" in changes:
            changes["advance_notice_days"] = sanitize_day_offset(
                changes["advance_notice_days"], current.advance_notice_days
            )
        return await self.save_policy(current.model_copy(update=changes))

    def updated_at(self) -> Optional[str]:
        pref = self.store.get_user_obj("notification_preferences", self.user_id) or {}
        return pref.get("updated_at")


class JsonDeliverySink:
    """Delivery sink that keeps pending and delivered entries in the JsonStore."""

    def __init__(self, store: JsonStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self._action_callbacks: list[UserActionCallback] = []
        self._delivered_callbacks: list[DeliveredCallback] = []

    @staticmethod
    def _entries(rows: list[dict[str, Any]]) -> list[NotificationEntry]:
        entries: list[NotificationEntry] = []
        for row in rows:
            try:
                entries.append(NotificationEntry.model_validate(row))
            except ValidationError:
                logger.warning(f"Dropping unreadable notification row {row.get('identity')!r}")
        return entries

    @staticmethod
    def _row(entry: NotificationEntry) -> dict[str, Any]:
        return entry.model_dump(mode="json")

    async def schedule(self, entry: NotificationEntry) -> None:
        def _add(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
            rows = [row for row in rows if row.get("identity") != entry.identity]
            rows.append(self._row(entry))
            return rows

        try:
            self.store.update_user_list("notifications", self.user_id, _add)
        except OSError as e:
            raise DeliverySinkFailure(entry.identity, str(e)) from e

    async def cancel(self, identities: list[str]) -> None:
        drop = set(identities)
        try:
            self.store.update_user_list(
                "notifications",
                self.user_id,
                lambda rows: [row for row in rows if row.get("identity") not in drop],
            )
        except OSError as e:
            raise DeliverySinkFailure(",".join(identities), str(e)) from e

    async def list_pending(self) -> list[NotificationEntry]:
        return self._entries(self.store.get_user_list("notifications", self.user_id))

    async def list_delivered(self) -> list[NotificationEntry]:
        return self._entries(self.store.get_user_list("delivered_notifications", self.user_id))

    def on_user_action(self, callback: UserActionCallback) -> None:
        self._action_callbacks.append(callback)

    def on_delivered(self, callback: DeliveredCallback) -> None:
        self._delivered_callbacks.append(callback)

    async def dispatch_due(self, as_of: datetime | None = None) -> list[NotificationEntry]:
        """Deliver every pending entry due at `as_of` and notify listeners."""
        as_of = as_of or now_utc()
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)

        delivered: list[NotificationEntry] = []

        def _split(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
            pending_rows, delivered_rows = dispatch_due(self._entries(rows), as_of=as_of)
            delivered.extend(delivered_rows)
            return [self._row(entry) for entry in pending_rows]

        self.store.update_user_list("notifications", self.user_id, _split)
        if not delivered:
            return []

        history = [self._row(entry) for entry in delivered if not entry.content.silent]
        if history:
            self.store.update_user_list(
                "delivered_notifications",
                self.user_id,
                lambda rows: (history[::-1] + rows)[:MAX_DELIVERED_HISTORY],
            )

        logger.info(f"Delivered {len(delivered)} notifications for {self.user_id}")
        for entry in delivered:
            await fire_callbacks(self._delivered_callbacks, entry)
        return delivered

    async def emit_user_action(self, identity: str, action_id: str) -> Optional[NotificationPayload]:
        """Replay a user action on a delivered (or still pending) entry."""
        for entry in [*await self.list_delivered(), *await self.list_pending()]:
            if entry.identity == identity:
                await fire_callbacks(self._action_callbacks, action_id, entry.content.payload)
                return entry.content.payload
        return None

    async def clear_all(self) -> int:
        pending = self.store.get_user_list("notifications", self.user_id)
        self.store.set_user_list("notifications", self.user_id, [])
        self.store.set_user_list("delivered_notifications", self.user_id, [])
        logger.info(f"Cleared {len(pending)} pending notifications for {self.user_id}")
        return len(pending)


class StorePermissionProvider:
    """Persists the user's notification permission; prompts wait for `resolve`."""

    def __init__(self, store: JsonStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self._answer: asyncio.Future | None = None

    async def current_status(self) -> AuthorizationState:
        row = self.store.get_user_obj("notification_authorization", self.user_id) or {}
        return row.get("status") or "notDetermined"

    async def prompt(self) -> AuthorizationState:
        loop = asyncio.get_running_loop()
        if self._answer is None or self._answer.done() or self._answer.get_loop() is not loop:
            self._answer = loop.create_future()
        return await self._answer

    def resolve(self, state: AuthorizationState) -> None:
        self.store.set_user_obj(
            "notification_authorization",
            self.user_id,
            {"status": state, "updated_at": now_utc().isoformat().replace("+00:00", "Z")},
        )
        answer = self._answer
        if answer is not None and not answer.done() and not answer.get_loop().is_closed():
            answer.get_loop().call_soon_threadsafe(self._settle, answer, state)

    @staticmethod
    def _settle(answer: asyncio.Future, state: AuthorizationState) -> None:
        if not answer.done():
            answer.set_result(state)


class StoreCommandConsumer:
    """Applies domain commands to the JsonStore inventory owned by the app."""

    def __init__(self, store: JsonStore, user_id: str, engine: Any) -> None:
        self.store = store
        self.user_id = user_id
        self.engine = engine

    async def handle(self, command: DomainCommand) -> Optional[dict[str, Any]]:
        if isinstance(command, MarkConsumed):
            return await self._mark_consumed(command)
        if isinstance(command, NavigateToItem):
            target = {
                "item_id": command.item_id,
                "requested_at": now_utc().isoformat().replace("+00:00", "Z"),
            }
            self.store.set_user_obj("navigation", self.user_id, target)
            return target
        return None

    async def _mark_consumed(self, command: MarkConsumed) -> Optional[dict[str, Any]]:
        consumed: dict[str, Any] = {}

        def _consume(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
            next_rows: list[dict[str, Any]] = []
            for row in rows:
                if str(row.get("id")) != command.item_id:
                    next_rows.append(row)
                    continue
                qty = int(row.get("quantity") or 0) - command.quantity
                consumed.update(row)
                consumed["quantity"] = max(qty, 0)
                if qty > 0:
                    next_row = dict(row)
                    next_row["quantity"] = qty
                    next_row["updated_at"] = now_utc().isoformat().replace("+00:00", "Z")
                    next_rows.append(next_row)
            return next_rows

        self.store.update_user_list("inventory", self.user_id, _consume)
        if not consumed:
            logger.warning(f"Mark consumed: item {command.item_id} not found for {self.user_id}")
            return None

        await self.engine.refresh("item consumed")
        item = _item_from_row(consumed)
        await self.engine.send_immediate(item, message=f"✅ {consumed.get('name')} was marked as consumed.")
        return consumed
