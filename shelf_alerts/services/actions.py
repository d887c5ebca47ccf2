from __future__ import annotations

import logging
from typing import Optional

from shelf_alerts.config import SNOOZE_DELAY_HOURS
from shelf_alerts.models import (
    DomainCommand,
    MarkConsumed,
    NavigateToItem,
    NotificationPayload,
    ScheduleSnooze,
)

logger = logging.getLogger(__name__)

VIEW_PRODUCT = "VIEW_PRODUCT"
MARK_CONSUMED = "MARK_CONSUMED"
SNOOZE = "SNOOZE"
DEFAULT_ACTION = "DEFAULT_ACTION"

NAVIGATION_ACTIONS = (VIEW_PRODUCT, DEFAULT_ACTION)


def route(action_id: str, payload: NotificationPayload) -> Optional[DomainCommand]:
    """Map a user action on a delivered notification to a domain command.

    Returns None for unknown actions and for payloads that do not reference an
    item; both are logged and otherwise ignored.
    """
    item_id = (payload.item_id or "").strip()

    if action_id not in (*NAVIGATION_ACTIONS, MARK_CONSUMED, SNOOZE):
        logger.warning(f"Ignoring unknown notification action {action_id!r}")
        return None
    if not item_id:
        logger.warning(f"Ignoring action {action_id!r}: payload has no item id")
        return None

    if action_id in NAVIGATION_ACTIONS:
        return NavigateToItem(item_id=item_id)
    if action_id == MARK_CONSUMED:
        return MarkConsumed(item_id=item_id, quantity=1)
    return ScheduleSnooze(item_id=item_id, delay_hours=SNOOZE_DELAY_HOURS, payload=payload)
