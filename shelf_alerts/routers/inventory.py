from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, HTTPException, Query, Request

from shelf_alerts.config import DEFAULT_USER_ID
from shelf_alerts.dependencies import get_engine, normalize_user_id
from shelf_alerts.models import InventoryAdjustRequest, InventoryCreateRequest
from shelf_alerts.services.expiration import (
    days_until_expiration,
    now_utc,
    parse_expiration_date,
    status_from_days,
)

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])


def _with_status(row: dict, engine) -> dict:
    exp = parse_expiration_date(str(row.get("expires_on") or ""))
    next_row = dict(row)
    if exp is None:
        next_row["days_remaining"] = None
        next_row["status"] = "unknown"
        return next_row
    d_left = days_until_expiration(exp, engine.now())
    next_row["days_remaining"] = d_left
    next_row["status"] = status_from_days(d_left, engine.current_policy().advance_notice_days)
    return next_row


@router.get("/items")
async def list_items(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    rows = request.app.state.store.get_user_list("inventory", normalize_user_id(user_id))
    items = [_with_status(row, engine) for row in rows]
    return {"data": {"items": items, "count": len(items)}}


@router.get("/expiring")
async def expiring_items(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
    days: int = Query(default=3, ge=0),
) -> dict:
    engine = await get_engine(request, user_id)
    rows = request.app.state.store.get_user_list("inventory", normalize_user_id(user_id))
    items = [
        row
        for row in (_with_status(row, engine) for row in rows)
        if row["days_remaining"] is not None and 0 <= row["days_remaining"] <= days
    ]
    items.sort(key=lambda row: row["days_remaining"])
    return {"data": {"items": items, "count": len(items)}}


@router.post("/items")
async def create_item(
    payload: InventoryCreateRequest,
    request: Request,
) -> dict:
    if parse_expiration_date(payload.expires_on) is None:
        raise HTTPException(status_code=400, detail="expires_on must be a date (YYYY-MM-DD).")

    store = request.app.state.store
    user_id = normalize_user_id(payload.user_id)
    now = now_utc().isoformat().replace("+00:00", "Z")
    item = {
        "id": str(uuid4()),
        "name": payload.name.strip(),
        "quantity": payload.quantity,
        "expires_on": parse_expiration_date(payload.expires_on).isoformat(),
        "created_at": now,
        "updated_at": now,
    }
    store.update_user_list("inventory", user_id, lambda rows: rows + [item])

    engine = await get_engine(request, user_id)
    report = await engine.refresh("item added")
    return {"data": {"item": _with_status(item, engine), "schedule": report.model_dump()}}


@router.post("/items/{item_id}/adjust")
async def adjust_item(
    item_id: str,
    payload: InventoryAdjustRequest,
    request: Request,
) -> dict:
    delta = payload.delta_quantity
    if delta == 0:
        raise HTTPException(status_code=400, detail="delta_quantity must be non-zero.")

    store = request.app.state.store
    user_id = normalize_user_id(payload.user_id)
    rows = store.get_user_list("inventory", user_id)
    next_rows: list[dict] = []
    updated_item: dict | None = None
    found = False

    for row in rows:
        if str(row.get("id")) != str(item_id):
            next_rows.append(row)
            continue

        found = True
        qty = int(row.get("quantity") or 0) + delta
        if qty <= 0:
            continue

        next_row = dict(row)
        next_row["quantity"] = qty
        next_row["updated_at"] = now_utc().isoformat().replace("+00:00", "Z")
        updated_item = next_row
        next_rows.append(next_row)

    if not found:
        raise HTTPException(status_code=404, detail="inventory item not found.")

    store.set_user_list("inventory", user_id, next_rows)
    engine = await get_engine(request, user_id)
    report = await engine.refresh("quantity changed")
    return {
        "data": {
            "updated_item": updated_item,
            "removed": updated_item is None,
            "schedule": report.model_dump(),
        }
    }


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: str,
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    store = request.app.state.store
    uid = normalize_user_id(user_id)
    rows = store.get_user_list("inventory", uid)
    next_rows = [row for row in rows if str(row.get("id")) != str(item_id)]
    if len(next_rows) == len(rows):
        raise HTTPException(status_code=404, detail="inventory item not found.")

    store.set_user_list("inventory", uid, next_rows)
    engine = await get_engine(request, uid)
    report = await engine.refresh("item deleted")
    return {"data": {"removed": True, "schedule": report.model_dump()}}
