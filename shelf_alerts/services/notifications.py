from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

from shelf_alerts.config import (
    DEFAULT_ADVANCE_NOTICE_DAYS,
    MAX_ADVANCE_NOTICE_DAYS,
    MIN_ADVANCE_NOTICE_DAYS,
)
from shelf_alerts.models import (
    InventoryItem,
    NotificationContent,
    NotificationEntry,
    NotificationPayload,
    ScheduleSnooze,
    SchedulingPolicy,
)
from shelf_alerts.services.expiration import at_local_time, local_date, next_occurrence

EXPIRATION_PREFIX = "expiration_"
DAILY_CHECK_IDENTITY = "daily_expiration_check"
EXPIRATION_CATEGORY = "EXPIRATION_ALERT"

_TITLES_BY_DAY = {
    0: "⚠️ Expires today",
    1: "🔴 Expires tomorrow",
    2: "🟠 Expiring soon",
    3: "🟡 Expiration ahead",
}


def sanitize_day_offset(value: int | float | None, fallback: int = DEFAULT_ADVANCE_NOTICE_DAYS) -> int:
    try:
        day = int(round(float(value)))
    except (TypeError, ValueError):
        day = fallback
    if day < MIN_ADVANCE_NOTICE_DAYS:
        return MIN_ADVANCE_NOTICE_DAYS
    if day > MAX_ADVANCE_NOTICE_DAYS:
        return MAX_ADVANCE_NOTICE_DAYS
    return day


def expiration_identity(item_id: str, days_until_expiration: int) -> str:
    return f"{EXPIRATION_PREFIX}{item_id}_{days_until_expiration}"


def is_managed_identity(identity: str) -> bool:
    return identity.startswith(EXPIRATION_PREFIX)


def expiration_content(item: InventoryItem, days_until_expiration: int) -> NotificationContent:
    title = _TITLES_BY_DAY.get(days_until_expiration, "🔔 Expiration reminder")
    if days_until_expiration == 0:
        body = f"{item.name} expires today! Quantity: {item.quantity}"
    elif days_until_expiration == 1:
        body = f"{item.name} expires in 1 day. Quantity: {item.quantity}"
    else:
        body = f"{item.name} expires in {days_until_expiration} days. Quantity: {item.quantity}"
    return NotificationContent(
        title=title,
        body=body,
        category=EXPIRATION_CATEGORY,
        payload=NotificationPayload(
            type="expiration",
            item_id=item.id,
            item_name=item.name,
            quantity=item.quantity,
            days_until_expiration=days_until_expiration,
        ),
    )


def expiration_alert_slot(
    days_until_expiration: int,
    policy: SchedulingPolicy,
    now: datetime,
) -> tuple[int, datetime]:
    """(days left at fire time, fire time) for an item expiring in `days_until_expiration` days.

    Today's alert time is used while it is still ahead. Once it has passed the
    alert moves to tomorrow and counts one day less, except on the expiration
    day itself: that alert keeps today's (past) alert time, so the sink delivers
    it on its next pass and the identity and fire time stay stable across refreshes.
    """
    today_alert = at_local_time(local_date(now), policy.alert_hour, policy.alert_minute, now.tzinfo)
    if days_until_expiration == 0 or today_alert > now:
        return days_until_expiration, today_alert
    tomorrow = local_date(now) + timedelta(days=1)
    return days_until_expiration - 1, at_local_time(tomorrow, policy.alert_hour, policy.alert_minute, now.tzinfo)


def build_expiration_entry(
    item: InventoryItem,
    days_until_expiration: int,
    fire_at: datetime,
    now: datetime,
) -> NotificationEntry:
    return NotificationEntry(
        identity=expiration_identity(item.id, days_until_expiration),
        kind="expiration-today" if days_until_expiration == 0 else "expiration-day-offset",
        fire_at=fire_at,
        repeats=False,
        content=expiration_content(item, days_until_expiration),
        created_at=now,
    )


def build_daily_check_entry(policy: SchedulingPolicy, now: datetime) -> NotificationEntry:
    return NotificationEntry(
        identity=DAILY_CHECK_IDENTITY,
        kind="daily-check",
        fire_at=next_occurrence(now, policy.daily_check_hour, policy.daily_check_minute),
        repeats=True,
        content=NotificationContent(
            title="Daily check",
            body="Refreshing expiration reminders",
            silent=True,
            payload=NotificationPayload(type="daily_check"),
        ),
        created_at=now,
    )


def build_immediate_entry(
    item: InventoryItem | None,
    now: datetime,
    message: str | None = None,
) -> NotificationEntry:
    if item is None:
        body = message or "This is a test notification."
        payload = NotificationPayload(type="immediate")
        suffix = "test"
    else:
        body = message or f"{item.name} needs your attention"
        payload = NotificationPayload(
            type="immediate",
            item_id=item.id,
            item_name=item.name,
            quantity=item.quantity,
        )
        suffix = item.id
    return NotificationEntry(
        identity=f"immediate_{suffix}_{now.timestamp():.0f}_{uuid4().hex[:8]}",
        kind="immediate",
        fire_at=None,
        content=NotificationContent(
            title="🔔 Shelf alert",
            body=body,
            category=EXPIRATION_CATEGORY,
            payload=payload,
        ),
        created_at=now,
    )


def build_snooze_entry(command: ScheduleSnooze, now: datetime) -> NotificationEntry:
    name = command.payload.item_name or "A product"
    payload = command.payload.model_copy(update={"item_id": command.item_id})
    return NotificationEntry(
        identity=f"snooze_{uuid4()}",
        kind="snoozed",
        fire_at=now + timedelta(hours=command.delay_hours),
        content=NotificationContent(
            title="🔔 Reminder",
            body=f"Don't forget: {name} expires soon",
            category=EXPIRATION_CATEGORY,
            payload=payload,
        ),
        created_at=now,
    )


def build_custom_reminder_entry(
    title: str,
    body: str,
    fire_at: datetime,
    now: datetime,
    item: InventoryItem | None = None,
) -> NotificationEntry:
    payload = NotificationPayload(type="custom_reminder")
    if item is not None:
        payload = NotificationPayload(
            type="custom_reminder",
            item_id=item.id,
            item_name=item.name,
            quantity=item.quantity,
        )
    return NotificationEntry(
        identity=f"reminder_{uuid4()}",
        kind="custom-reminder",
        fire_at=fire_at,
        content=NotificationContent(title=title, body=body, category=EXPIRATION_CATEGORY, payload=payload),
        created_at=now,
    )


def dispatch_due(
    entries: list[NotificationEntry],
    as_of: datetime,
) -> tuple[list[NotificationEntry], list[NotificationEntry]]:
    """Split pending entries into (still_pending, delivered) as of `as_of`.

    Repeating entries are delivered and kept pending with their next fire time
    pushed forward by whole days until it is in the future.
    """
    pending_rows: list[NotificationEntry] = []
    delivered_rows: list[NotificationEntry] = []

    for entry in entries:
        if entry.fire_at is not None and entry.fire_at > as_of:
            pending_rows.append(entry)
            continue
        delivered_rows.append(entry)
        if entry.repeats and entry.fire_at is not None:
            next_fire = entry.fire_at
            while next_fire <= as_of:
                next_fire = next_fire + timedelta(days=1)
            pending_rows.append(entry.model_copy(update={"fire_at": next_fire}))

    return pending_rows, delivered_rows
