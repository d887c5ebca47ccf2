from __future__ import annotations

from fastapi import APIRouter

from shelf_alerts.services.expiration import now_utc

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "timestamp": now_utc().isoformat().replace("+00:00", "Z")}
