"""
Schedule planner: maps (inventory snapshot, policy, now) to the desired set
of notification entries.

The planner is a pure function. It reads nothing but its arguments, so it can
run anywhere and be discarded freely.
"""

from __future__ import annotations

import logging
from datetime import datetime

from shelf_alerts.errors import MalformedItem
from shelf_alerts.models import InventoryItem, NotificationEntry, SchedulingPolicy
from shelf_alerts.services.expiration import days_until_expiration, expiration_date_of
from shelf_alerts.services.notifications import (
    build_daily_check_entry,
    build_expiration_entry,
    expiration_alert_slot,
)

logger = logging.getLogger(__name__)


def plan(
    items: list[InventoryItem],
    policy: SchedulingPolicy,
    now: datetime,
) -> list[NotificationEntry]:
    """
    Compute the target notification set.

    Calendar days are counted in `now`'s timezone. Each item gets at most one
    alert at the next alert time, labelled with the days left when it fires.
    Alerts within `advance_notice_days` (inclusive) are kept: day-offset
    entries, or expiration-today on the last day. A silent daily-check entry
    is added when enabled. Items without a usable expiration date are skipped.
    """
    entries: list[NotificationEntry] = []

    if policy.expiration_alerts_enabled:
        for item in items:
            try:
                expires_on = expiration_date_of(item)
            except MalformedItem as e:
                logger.warning(f"Skipping item in plan: {e}")
                continue

            days, fire_at = expiration_alert_slot(days_until_expiration(expires_on, now), policy, now)
            if 0 <= days <= policy.advance_notice_days:
                entries.append(build_expiration_entry(item, days, fire_at, now))

    if policy.daily_check_enabled:
        entries.append(build_daily_check_entry(policy, now))

    return entries
