from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from softdeploy.config import load_execution_settings
from softdeploy.routes import get_routers
from softdeploy.services.event_bus import EventBus
from softdeploy.services.logging_service import logging_service
from softdeploy.services.run_service import RunService
from softdeploy.services.settings_service import SettingsService
from softdeploy.services.suite_store import SuiteStore
from softdeploy.services.test_engine import TestEngine
from softdeploy.utils import paths


def create_app(data_dir: Optional[Path] = None, test_engine: Optional[TestEngine] = None) -> FastAPI:
    """Build the FastAPI application with its services wired onto ``app.state``."""
    base = Path(data_dir) if data_dir is not None else paths.DATA_DIR
    paths.ensure_data_dirs(base)

    app = FastAPI(title="SoftDeploy Test Execution Backend")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger = logging_service.get_logger("softdeploy")
    settings_service = SettingsService(base / paths.SETTINGS_DIR.name / "settings.json")
    settings_service.load()
    suite_store = SuiteStore(base / paths.SUITES_FILE.name)
    if test_engine is None:
        test_engine = TestEngine(
            EventBus(),
            RunService(base / paths.RUNS_FILE.name),
            settings=load_execution_settings(settings_service.get_execution_section()),
            spec_dir=base / paths.ARTIFACTS_DIR.name / paths.CYPRESS_SPEC_DIR.name,
        )

    app.state.logger = logger
    app.state.event_bus = test_engine.event_bus
    app.state.settings_service = settings_service
    app.state.run_service = test_engine.run_service
    app.state.suite_store = suite_store
    app.state.test_engine = test_engine
    app.state.upload_dir = base / paths.UPLOAD_DIR.name

    @app.on_event("startup")
    async def startup_event() -> None:
        logger.info("Backend startup, data directory %s", base)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await test_engine.shutdown()
        logger.info("Backend stopped")

    for router in get_routers():
        app.include_router(router)

    return app
