"""Router registration helpers."""
from __future__ import annotations

from fastapi import APIRouter

from .executions import router as executions_router
from .health import router as health_router
from .runs import router as runs_router
from .settings import router as settings_router
from .suites import router as suites_router
from .websockets import router as websocket_router


def get_routers() -> list[APIRouter]:
    return [
        executions_router,
        health_router,
        suites_router,
        runs_router,
        settings_router,
        websocket_router,
    ]
