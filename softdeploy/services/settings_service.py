"""Settings service holding server and execution options."""
from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

from softdeploy.services.logging_service import logging_service
from softdeploy.utils.json_store import load_json, save_json
from softdeploy.utils.paths import SETTINGS_DIR

SETTINGS_FILE = SETTINGS_DIR / "settings.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "system": {
        "name": "SoftDeploy",
        "version": "1.0.0",
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3001,
    },
    "execution": {
        "default_base_url": "https://jsonplaceholder.typicode.com",
        "api_timeout": 30.0,
        "load_request_timeout": 5.0,
        "load_request_interval": 1.0,
        "load_error_penalty_ms": 5000,
        "selector_timeout": 2.0,
        "assertion_timeout": 5.0,
        "navigation_timeout": 30.0,
        "cypress_timeout": 300.0,
        "headless": True,
    },
}


class SettingsService:
    def __init__(self, settings_file: Path | None = None) -> None:
        self.settings_file = Path(settings_file) if settings_file is not None else SETTINGS_FILE
        self._settings: Dict[str, Any] = deepcopy(DEFAULT_SETTINGS)
        self._logger = logging_service.get_logger(__name__)

    def load(self) -> Dict[str, Any]:
        raw = load_json(self.settings_file, default={})
        if not isinstance(raw, dict):
            self._logger.warning("Ignoring malformed settings file %s", self.settings_file)
            raw = {}
        self._settings = self._merge_with_defaults(raw)
        self._apply_environment(self._settings)
        self._logger.info("Settings loaded from %s", self.settings_file)
        return self._settings

    def _merge_with_defaults(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        merged = deepcopy(DEFAULT_SETTINGS)
        self._deep_update(merged, settings)
        return merged

    def _deep_update(self, target: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in updates.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                self._deep_update(target[key], value)
            else:
                target[key] = value
        return target

    def _apply_environment(self, settings: Dict[str, Any]) -> None:
        port = os.environ.get("PORT")
        if port:
            try:
                settings["server"]["port"] = int(port)
            except ValueError:
                self._logger.warning("Ignoring non-numeric PORT value %r", port)

    def get_settings(self) -> Dict[str, Any]:
        return self._settings

    def save_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        self._settings = self._merge_with_defaults(settings)
        save_json(self.settings_file, self._settings)
        self._logger.info("Settings saved")
        return self._settings

    def get_execution_section(self) -> Dict[str, Any]:
        return self._settings.get("execution", {})
