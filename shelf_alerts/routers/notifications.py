from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query, Request

from shelf_alerts.config import (
    DEFAULT_ADVANCE_NOTICE_DAYS,
    DEFAULT_USER_ID,
    MAX_ADVANCE_NOTICE_DAYS,
    MIN_ADVANCE_NOTICE_DAYS,
)
from shelf_alerts.dependencies import get_engine
from shelf_alerts.models import (
    CustomReminderPayload,
    ImmediateNotificationPayload,
    NotificationPreferencesPayload,
    RunDuePayload,
    UserActionPayload,
    UserPayload,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


def _pref_response(engine) -> dict:
    policy = engine.current_policy()
    return {
        **policy.model_dump(),
        "updated_at": engine.preferences.updated_at(),
        "default_advance_notice_days": DEFAULT_ADVANCE_NOTICE_DAYS,
        "min_advance_notice_days": MIN_ADVANCE_NOTICE_DAYS,
        "max_advance_notice_days": MAX_ADVANCE_NOTICE_DAYS,
    }


def _fire_order(entry) -> datetime:
    # Immediate entries (no fire time) first.
    if entry.fire_at is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if entry.fire_at.tzinfo is None:
        return entry.fire_at.replace(tzinfo=timezone.utc)
    return entry.fire_at.astimezone(timezone.utc)


def _entry_rows(entries) -> list[dict]:
    return [entry.model_dump(mode="json") for entry in sorted(entries, key=_fire_order)]


@router.get("")
async def list_notifications(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
    kind: str = Query(default="all"),
) -> dict:
    engine = await get_engine(request, user_id)
    entries = await engine.sink.list_pending()
    if kind != "all":
        entries = [entry for entry in entries if entry.kind == kind]
    rows = _entry_rows(entries)
    return {"data": {"items": rows, "count": len(rows)}}


@router.get("/delivered")
async def list_delivered(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    rows = [entry.model_dump(mode="json") for entry in await engine.sink.list_delivered()]
    return {"data": {"items": rows, "count": len(rows)}}


@router.get("/preferences")
async def get_preferences(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    return {"data": _pref_response(engine)}


@router.post("/preferences")
async def save_preferences(
    payload: NotificationPreferencesPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    changes = payload.model_dump(exclude={"user_id"}, exclude_none=True)
    await engine.preferences.update_policy(changes)
    pending = await engine.pending_count()
    return {"data": {**_pref_response(engine), "pending_count": pending}}


@router.post("/refresh")
async def refresh(
    payload: UserPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    report = await engine.refresh("requested")
    return {"data": report.model_dump()}


@router.post("/run-due")
async def run_due(
    payload: RunDuePayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    as_of = payload.as_of_datetime or engine.now()
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    delivered = await engine.sink.dispatch_due(as_of)
    return {
        "data": {
            "as_of_datetime": as_of.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            "sent_count": len(delivered),
            "sent": [entry.identity for entry in delivered],
        }
    }


@router.post("/actions")
async def user_action(
    payload: UserActionPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    notification_payload = await engine.sink.emit_user_action(payload.identity, payload.action_id)
    if notification_payload is None:
        raise HTTPException(status_code=404, detail="notification not found.")
    return {"data": {"identity": payload.identity, "action_id": payload.action_id}}


@router.get("/navigation")
async def navigation_target(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    target = request.app.state.store.get_user_obj("navigation", engine.sink.user_id)
    return {"data": target}


@router.post("/test")
async def send_test(
    payload: ImmediateNotificationPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    item = None
    if payload.item_id:
        item = engine.inventory.get_item(payload.item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="inventory item not found.")
    entry = await engine.send_immediate(item, payload.message)
    return {"data": {"scheduled": entry is not None, "identity": entry.identity if entry else None}}


@router.post("/reminders")
async def create_reminder(
    payload: CustomReminderPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    item = None
    if payload.item_id:
        item = engine.inventory.get_item(payload.item_id)
        if item is None:
            raise HTTPException(status_code=404, detail="inventory item not found.")
    fire_at = payload.fire_at
    if fire_at.tzinfo is None:
        fire_at = fire_at.replace(tzinfo=timezone.utc)
    entry = await engine.schedule_custom_reminder(payload.title, payload.body, fire_at, item=item)
    return {"data": {"scheduled": entry is not None, "identity": entry.identity if entry else None}}


@router.delete("")
async def clear_notifications(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    cleared = await engine.sink.clear_all()
    return {"data": {"cleared_count": cleared}}
