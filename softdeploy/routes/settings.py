from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from softdeploy.config import load_execution_settings
from softdeploy.routes.dependencies import engine, settings

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("")
async def get_settings(request: Request) -> dict:
    return settings(request).get_settings()


@router.post("")
async def save_settings(payload: Dict[str, Any], request: Request) -> dict:
    service = settings(request)
    saved = service.save_settings(payload)
    engine(request).settings = load_execution_settings(service.get_execution_section())
    return saved
