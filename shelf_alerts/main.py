from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shelf_alerts.config import DATA_FILE, LOG_LEVEL, get_cors_allow_origins
from shelf_alerts.routers.authorization import router as authorization_router
from shelf_alerts.routers.health import router as health_router
from shelf_alerts.routers.inventory import router as inventory_router
from shelf_alerts.routers.notifications import router as notifications_router
from shelf_alerts.storage import JsonStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Shelf Alerts API",
    version="0.1.0",
    description="Expiration reminder scheduling for household inventory.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.store = JsonStore(DATA_FILE)
app.state.engines = {}

app.include_router(health_router)
app.include_router(inventory_router)
app.include_router(authorization_router)
app.include_router(notifications_router)


@app.get("/")
async def root() -> dict:
    return {
        "name": "shelf-alerts",
        "status": "ok",
        "docs": "/docs",
    }
