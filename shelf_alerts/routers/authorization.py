from __future__ import annotations

from fastapi import APIRouter, Query, Request

from shelf_alerts.config import DEFAULT_USER_ID
from shelf_alerts.dependencies import get_engine
from shelf_alerts.models import AuthorizationResponsePayload, UserPayload

router = APIRouter(prefix="/api/v1/notifications/authorization", tags=["authorization"])


def _auth_response(engine) -> dict:
    return {"status": engine.gate.state, "authorized": engine.gate.is_authorized()}


@router.get("")
async def get_authorization(
    request: Request,
    user_id: str = Query(default=DEFAULT_USER_ID),
) -> dict:
    engine = await get_engine(request, user_id)
    await engine.gate.refresh_status()
    return {"data": _auth_response(engine)}


@router.post("/request")
async def request_authorization(
    payload: UserPayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    await engine.gate.request_authorization()
    return {"data": _auth_response(engine)}


@router.post("/respond")
async def respond_authorization(
    payload: AuthorizationResponsePayload,
    request: Request,
) -> dict:
    engine = await get_engine(request, payload.user_id)
    if payload.granted:
        state = "provisional" if payload.provisional else "authorized"
    else:
        state = "denied"
    engine.gate.provider.resolve(state)
    await engine.gate.refresh_status()
    pending = await engine.pending_count()
    return {"data": {**_auth_response(engine), "pending_count": pending}}
