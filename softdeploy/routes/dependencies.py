"""Accessors for the services stored on ``app.state``."""
from __future__ import annotations

from fastapi import Request

from softdeploy.services.run_service import RunService
from softdeploy.services.settings_service import SettingsService
from softdeploy.services.suite_store import SuiteStore
from softdeploy.services.test_engine import TestEngine


def engine(request: Request) -> TestEngine:
    return request.app.state.test_engine


def runs(request: Request) -> RunService:
    return request.app.state.run_service


def suites(request: Request) -> SuiteStore:
    return request.app.state.suite_store


def settings(request: Request) -> SettingsService:
    return request.app.state.settings_service
