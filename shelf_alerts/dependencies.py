from __future__ import annotations

from fastapi import Request

from shelf_alerts.adapters import (
    JsonDeliverySink,
    StoreCommandConsumer,
    StoreInventoryProvider,
    StorePermissionProvider,
    StorePreferenceStore,
)
from shelf_alerts.config import AUTHORIZATION_WAIT_SECONDS, DEFAULT_USER_ID, get_timezone
from shelf_alerts.services.authorization import AuthorizationGate
from shelf_alerts.services.engine import NotificationEngine
from shelf_alerts.storage import JsonStore


def normalize_user_id(user_id: str | None) -> str:
    return (user_id or "").strip() or DEFAULT_USER_ID


def build_engine(store: JsonStore, user_id: str) -> NotificationEngine:
    permissions = StorePermissionProvider(store, user_id)
    engine = NotificationEngine(
        inventory=StoreInventoryProvider(store, user_id),
        preferences=StorePreferenceStore(store, user_id),
        sink=JsonDeliverySink(store, user_id),
        gate=AuthorizationGate(permissions, timeout=AUTHORIZATION_WAIT_SECONDS),
        tz=get_timezone(),
    )
    engine.set_command_consumer(StoreCommandConsumer(store, user_id, engine))
    return engine


async def get_engine(request: Request, user_id: str) -> NotificationEngine:
    """One engine per user, cached on the app, with its gate synced to the store."""
    engines: dict[str, NotificationEngine] = request.app.state.engines
    uid = normalize_user_id(user_id)
    engine = engines.get(uid)
    if engine is None:
        engine = build_engine(request.app.state.store, uid)
        engines[uid] = engine
        await engine.gate.refresh_status()
    return engine
