from datetime import datetime, timedelta, timezone

from fakes import NOW, TODAY, item, on

from shelf_alerts.models import InventoryItem, SchedulingPolicy
from shelf_alerts.services.planner import plan


NO_DAILY = SchedulingPolicy(daily_check_enabled=False)


def _by_identity(entries):
    return {entry.identity: entry for entry in entries}


def test_item_two_days_out_gets_one_day_offset_entry() -> None:
    entries = plan([item("A", 2, quantity=2)], NO_DAILY, NOW)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.kind == "expiration-day-offset"
    assert entry.identity == "expiration_A_2"
    assert entry.fire_at == on(TODAY, 9)
    assert entry.repeats is False
    assert entry.content.payload.item_id == "A"
    assert entry.content.payload.quantity == 2
    assert entry.content.payload.days_until_expiration == 2
    assert "2 days" in entry.content.body


def test_advance_notice_boundary_is_inclusive() -> None:
    entries = _by_identity(plan([item("edge", 3), item("out", 4)], NO_DAILY, NOW))

    assert "expiration_edge_3" in entries
    assert not any(identity.startswith("expiration_out_") for identity in entries)


def test_custom_advance_notice_window() -> None:
    policy = SchedulingPolicy(advance_notice_days=7, daily_check_enabled=False)
    entries = _by_identity(plan([item("A", 7), item("B", 8)], policy, NOW))

    assert set(entries) == {"expiration_A_7"}


def test_expiring_today_and_expired_items() -> None:
    entries = _by_identity(plan([item("T", 0), item("old", -1)], NO_DAILY, NOW))

    assert set(entries) == {"expiration_T_0"}
    assert entries["expiration_T_0"].kind == "expiration-today"
    assert "today" in entries["expiration_T_0"].content.body


def test_zero_day_window_still_alerts_on_expiration_day() -> None:
    policy = SchedulingPolicy(advance_notice_days=0, daily_check_enabled=False)
    entries = _by_identity(plan([item("T", 0), item("A", 1)], policy, NOW))

    assert set(entries) == {"expiration_T_0"}


def test_disabled_alerts_only_keep_daily_check() -> None:
    policy = SchedulingPolicy(expiration_alerts_enabled=False)
    entries = plan([item("A", 0), item("B", 1), item("C", 3)], policy, NOW)

    assert [entry.kind for entry in entries] == ["daily-check"]


def test_daily_check_entry_is_silent_and_repeating() -> None:
    entries = plan([], SchedulingPolicy(), NOW)

    assert len(entries) == 1
    check = entries[0]
    assert check.identity == "daily_expiration_check"
    assert check.repeats is True
    assert check.content.silent is True
    assert check.fire_at == on(TODAY, 8)


def test_malformed_items_are_skipped_without_aborting() -> None:
    items = [
        InventoryItem(id="bad", name="Mystery jar", quantity=1, expires_on="not a date"),
        InventoryItem(id="missing", name="No label", quantity=1, expires_on=None),
        item("good", 1),
    ]
    entries = _by_identity(plan(items, NO_DAILY, NOW))

    assert set(entries) == {"expiration_good_1"}


def test_legacy_day_month_year_dates_are_accepted() -> None:
    expires = TODAY + timedelta(days=2)
    legacy = InventoryItem(id="L", name="Yogurt", quantity=1, expires_on=expires.strftime("%d-%m-%y"))

    entries = _by_identity(plan([legacy], NO_DAILY, NOW))

    assert set(entries) == {"expiration_L_2"}


def test_identities_are_deterministic_across_runs() -> None:
    items = [item("A", 1), item("B", 3)]
    later_same_day = NOW + timedelta(hours=1)

    first = sorted(entry.identity for entry in plan(items, NO_DAILY, NOW))
    second = sorted(entry.identity for entry in plan(list(reversed(items)), NO_DAILY, later_same_day))

    assert first == second == ["expiration_A_1", "expiration_B_3"]


def test_days_are_counted_in_calendar_days_not_elapsed_hours() -> None:
    late_evening = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc)
    policy = SchedulingPolicy(alert_hour=23, alert_minute=45, daily_check_enabled=False)
    tomorrow = InventoryItem(id="A", name="Milk", quantity=1, expires_on="2026-03-11")

    entries = _by_identity(plan([tomorrow], policy, late_evening))

    assert set(entries) == {"expiration_A_1"}


def test_days_follow_the_local_calendar_of_now() -> None:
    plus_two = timezone(timedelta(hours=2))
    # 23:30 UTC on the 10th is already the 11th at UTC+2.
    local_now = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc).astimezone(plus_two)
    milk = InventoryItem(id="A", name="Milk", quantity=1, expires_on="2026-03-11")

    entries = _by_identity(plan([milk], NO_DAILY, local_now))

    assert set(entries) == {"expiration_A_0"}


def test_alert_time_already_passed_moves_to_tomorrow_with_one_day_less() -> None:
    afternoon = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)
    policy = SchedulingPolicy(alert_hour=9, alert_minute=30, daily_check_enabled=False)

    entries = _by_identity(plan([item("A", 2, name="Milk")], policy, afternoon))

    assert set(entries) == {"expiration_A_1"}
    entry = entries["expiration_A_1"]
    assert entry.fire_at == on(TODAY + timedelta(days=1), 9, 30)
    assert entry.content.payload.days_until_expiration == 1
    assert entry.content.body == "Milk expires in 1 day. Quantity: 1"


def test_item_one_past_the_window_enters_it_after_alert_time() -> None:
    afternoon = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)

    entries = _by_identity(plan([item("A", 4)], NO_DAILY, afternoon))

    assert set(entries) == {"expiration_A_3"}


def test_expiring_today_after_alert_time_fires_on_next_pass() -> None:
    afternoon = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)

    entries = plan([item("T", 0)], NO_DAILY, afternoon)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.identity == "expiration_T_0"
    assert entry.kind == "expiration-today"
    assert entry.fire_at == on(TODAY, 9)
    assert entry.fire_at <= afternoon


def test_expiring_today_entry_is_stable_through_the_day() -> None:
    morning = plan([item("T", 0)], NO_DAILY, NOW)
    evening = plan([item("T", 0)], NO_DAILY, datetime(2026, 3, 10, 21, 0, tzinfo=timezone.utc))

    assert morning[0].identity == evening[0].identity
    assert morning[0].fire_at == evening[0].fire_at
