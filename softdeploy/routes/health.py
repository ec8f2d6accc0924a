from __future__ import annotations

from fastapi import APIRouter, Request

from softdeploy.routes.dependencies import engine, settings
from softdeploy.utils.ids import utc_now_iso

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    system = settings(request).get_settings().get("system", {})
    return {
        "status": "OK",
        "timestamp": utc_now_iso(),
        "activeExecutions": engine(request).active_count(),
        "version": system.get("version"),
    }
