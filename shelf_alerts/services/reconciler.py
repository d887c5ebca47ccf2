"""
Schedule reconciler: converges the delivery sink's pending set onto the
planner's target set with the fewest add/cancel operations.

Only entries in the managed expiration scope are swept here. Daily checks,
immediate, snoozed and custom reminders are additive; a daily check is only
ever replaced when its time of day or content changes.
"""

from __future__ import annotations

import logging
from datetime import datetime, time

from shelf_alerts.errors import DeliverySinkFailure
from shelf_alerts.models import NotificationEntry, ReconcilePlan, ReconcileReport
from shelf_alerts.ports import DeliverySink
from shelf_alerts.services.notifications import is_managed_identity

logger = logging.getLogger(__name__)


def _wall_clock(moment: datetime | None, like: datetime | None) -> time | None:
    if moment is None or like is None:
        return None
    if moment.tzinfo is not None and like.tzinfo is not None:
        moment = moment.astimezone(like.tzinfo)
    return moment.time()


def _is_stale(wanted: NotificationEntry, pending: NotificationEntry) -> bool:
    """Same identity, but the pending entry no longer matches what is wanted."""
    if wanted.content != pending.content:
        return True
    if wanted.repeats:
        # The sink advances repeating entries, so only the time of day matters.
        return _wall_clock(pending.fire_at, wanted.fire_at) != _wall_clock(wanted.fire_at, wanted.fire_at)
    return wanted.fire_at != pending.fire_at


def reconcile(
    target: list[NotificationEntry],
    pending: list[NotificationEntry],
    delivered: list[NotificationEntry] | None = None,
) -> ReconcilePlan:
    """
    Diff the target set against what the sink holds.

    Shared identities whose fire time or content changed are replaced. A
    single-fire target entry that was already delivered with the same fire
    time is not registered again.
    """
    pending_by_id = {entry.identity: entry for entry in pending}
    already_sent = {(entry.identity, entry.fire_at) for entry in delivered or [] if not entry.repeats}

    target_by_id: dict[str, NotificationEntry] = {}
    for entry in target:
        target_by_id.setdefault(entry.identity, entry)

    to_cancel = [
        identity
        for identity in pending_by_id
        if is_managed_identity(identity) and identity not in target_by_id
    ]
    to_add: list[NotificationEntry] = []
    for identity, entry in target_by_id.items():
        current = pending_by_id.get(identity)
        if current is None:
            if (identity, entry.fire_at) not in already_sent:
                to_add.append(entry)
        elif _is_stale(entry, current):
            to_cancel.append(identity)
            to_add.append(entry)
    return ReconcilePlan(to_add=to_add, to_cancel=to_cancel)


async def apply_plan(
    sink: DeliverySink,
    reconcile_plan: ReconcilePlan,
    report: ReconcileReport | None = None,
) -> ReconcileReport:
    """
    Issue the plan against the sink: all cancellations first, then additions.

    Failures are recorded per identity and do not stop the remaining work.
    """
    report = report or ReconcileReport()

    if reconcile_plan.to_cancel:
        try:
            await sink.cancel(reconcile_plan.to_cancel)
            report.canceled.extend(reconcile_plan.to_cancel)
        except DeliverySinkFailure as e:
            logger.error(f"Cancel failed for {len(reconcile_plan.to_cancel)} entries: {e}")
            for identity in reconcile_plan.to_cancel:
                report.failed[identity] = e.reason

    for entry in reconcile_plan.to_add:
        try:
            await sink.schedule(entry)
            report.added.append(entry.identity)
        except DeliverySinkFailure as e:
            logger.error(f"Schedule failed for {entry.identity}: {e}")
            report.failed[entry.identity] = e.reason

    return report
