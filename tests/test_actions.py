from shelf_alerts.models import MarkConsumed, NavigateToItem, NotificationPayload, ScheduleSnooze
from shelf_alerts.services.actions import route


PAYLOAD = NotificationPayload(item_id="A", item_name="Milk", quantity=2, days_until_expiration=1)


def test_view_and_default_tap_navigate() -> None:
    assert route("VIEW_PRODUCT", PAYLOAD) == NavigateToItem(item_id="A")
    assert route("DEFAULT_ACTION", PAYLOAD) == NavigateToItem(item_id="A")


def test_mark_consumed_takes_one_unit() -> None:
    assert route("MARK_CONSUMED", PAYLOAD) == MarkConsumed(item_id="A", quantity=1)


def test_snooze_waits_a_day_and_keeps_payload() -> None:
    command = route("SNOOZE", PAYLOAD)

    assert isinstance(command, ScheduleSnooze)
    assert command.item_id == "A"
    assert command.delay_hours == 24
    assert command.payload.item_name == "Milk"


def test_unknown_action_is_ignored() -> None:
    assert route("SHARE", PAYLOAD) is None


def test_payload_without_item_is_ignored() -> None:
    assert route("MARK_CONSUMED", NotificationPayload(type="daily_check")) is None
