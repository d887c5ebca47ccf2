"""
Notification engine: the re-derivation loop.

Every trigger (daily check delivered, authorization granted, inventory or
policy change, explicit refresh) runs the whole pipeline again:

    snapshot -> policy -> plan -> reconcile against sink -> apply

There is no incremental path. Pending state is read back from the delivery
sink on every run, so the engine holds nothing between runs except its lock.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from shelf_alerts.errors import DeliverySinkFailure, NotAuthorized, PolicyUnavailable
from shelf_alerts.models import (
    DomainCommand,
    InventoryItem,
    NotificationEntry,
    NotificationPayload,
    ReconcileReport,
    ScheduleSnooze,
    SchedulingPolicy,
)
from shelf_alerts.ports import (
    CommandConsumer,
    DeliverySink,
    InventorySnapshotProvider,
    PreferenceStore,
)
from shelf_alerts.services.actions import route
from shelf_alerts.services.authorization import AuthorizationGate
from shelf_alerts.services.notifications import (
    DAILY_CHECK_IDENTITY,
    build_custom_reminder_entry,
    build_daily_check_entry,
    build_immediate_entry,
    build_snooze_entry,
)
from shelf_alerts.services.planner import plan
from shelf_alerts.services.reconciler import apply_plan, reconcile

logger = logging.getLogger(__name__)


class NotificationEngine:
    def __init__(
        self,
        inventory: InventorySnapshotProvider,
        preferences: PreferenceStore,
        sink: DeliverySink,
        gate: AuthorizationGate,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.inventory = inventory
        self.preferences = preferences
        self.sink = sink
        self.gate = gate
        self._tz = tz
        self._clock = clock
        self._consumer: Optional[CommandConsumer] = None
        self._lock = asyncio.Lock()

        preferences.on_policy_changed(self._on_policy_changed)
        sink.on_user_action(self.handle_user_action)
        sink.on_delivered(self._on_delivered)
        gate.on_authorized(self._on_authorized)

    def set_command_consumer(self, consumer: CommandConsumer) -> None:
        self._consumer = consumer

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self._tz or timezone.utc).replace(microsecond=0)

    def current_policy(self) -> SchedulingPolicy:
        try:
            return self.preferences.get_policy()
        except PolicyUnavailable as e:
            logger.warning(f"Preferences unavailable, using defaults: {e}")
            return SchedulingPolicy()

    async def refresh(self, reason: str = "manual") -> ReconcileReport:
        """Re-plan from scratch and converge the sink onto the new plan."""
        if not self.gate.is_authorized():
            logger.warning(f"Skipping refresh ({reason}): authorization is {self.gate.state}")
            return ReconcileReport(authorized=False)

        async with self._lock:
            policy = self.current_policy()
            items = self.inventory.get_items()
            target = plan(items, policy, self.now())
            pending = await self.sink.list_pending()
            delivered = await self.sink.list_delivered()

            reconcile_plan = reconcile(target, pending, delivered)
            if not policy.daily_check_enabled and any(e.identity == DAILY_CHECK_IDENTITY for e in pending):
                reconcile_plan.to_cancel.append(DAILY_CHECK_IDENTITY)

            report = ReconcileReport(planned=len(target))
            if reconcile_plan.is_noop:
                logger.debug(f"Refresh ({reason}): schedule already up to date")
                return report

            await apply_plan(self.sink, reconcile_plan, report)

        logger.info(
            f"Refresh ({reason}): {len(items)} items, {len(target)} planned, "
            f"+{len(report.added)} -{len(report.canceled)} ({len(report.failed)} failed)"
        )
        return report

    async def ensure_daily_check(self) -> bool:
        """Register the daily check if policy wants one and none is pending."""
        if not self.gate.is_authorized():
            return False
        policy = self.current_policy()
        if not policy.daily_check_enabled:
            return False

        async with self._lock:
            pending = await self.sink.list_pending()
            if any(e.identity == DAILY_CHECK_IDENTITY for e in pending):
                return True
            try:
                await self.sink.schedule(build_daily_check_entry(policy, self.now()))
            except DeliverySinkFailure as e:
                logger.error(f"Could not register daily check: {e}")
                return False
        logger.info("Daily check registered")
        return True

    async def handle_user_action(self, action_id: str, payload: NotificationPayload) -> Optional[DomainCommand]:
        command = route(action_id, payload)
        if command is None:
            return None
        if isinstance(command, ScheduleSnooze):
            await self.schedule_snooze(command)
        if self._consumer is not None:
            await self._consumer.handle(command)
        return command

    async def schedule_snooze(self, command: ScheduleSnooze) -> Optional[NotificationEntry]:
        return await self._schedule_additive(build_snooze_entry(command, self.now()))

    async def send_immediate(
        self,
        item: InventoryItem | None = None,
        message: str | None = None,
    ) -> Optional[NotificationEntry]:
        return await self._schedule_additive(build_immediate_entry(item, self.now(), message))

    async def schedule_custom_reminder(
        self,
        title: str,
        body: str,
        fire_at: datetime,
        item: InventoryItem | None = None,
    ) -> Optional[NotificationEntry]:
        return await self._schedule_additive(
            build_custom_reminder_entry(title, body, fire_at, self.now(), item=item)
        )

    async def pending_count(self) -> int:
        return len(await self.sink.list_pending())

    async def _schedule_additive(self, entry: NotificationEntry) -> Optional[NotificationEntry]:
        try:
            self.gate.ensure_authorized()
        except NotAuthorized as e:
            logger.warning(f"Not scheduling {entry.kind} entry: {e}")
            return None

        async with self._lock:
            try:
                await self.sink.schedule(entry)
            except DeliverySinkFailure as e:
                logger.error(f"Could not schedule {entry.identity}: {e}")
                return None
        return entry

    async def _on_authorized(self) -> None:
        await self.ensure_daily_check()
        await self.refresh("authorized")

    async def _on_policy_changed(self, policy: SchedulingPolicy) -> None:
        await self.refresh("policy changed")

    async def _on_delivered(self, entry: NotificationEntry) -> None:
        if entry.kind == "daily-check":
            await self.refresh("daily check")
