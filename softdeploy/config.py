"""Typed views on the persisted settings."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from softdeploy.services.settings_service import DEFAULT_SETTINGS


# Options read by the step executors and the engine
@dataclass
class ExecutionSettings:
    default_base_url: str = DEFAULT_SETTINGS["execution"]["default_base_url"]
    api_timeout: float = 30.0
    load_request_timeout: float = 5.0
    load_request_interval: float = 1.0
    load_error_penalty_ms: float = 5000
    selector_timeout: float = 2.0
    assertion_timeout: float = 5.0
    navigation_timeout: float = 30.0
    cypress_timeout: float = 300.0
    headless: bool = True


def _read_value(section: Dict[str, Any], key: str, fallback: Any) -> Any:
    value = section.get(key)
    if value is None:
        return fallback
    if isinstance(fallback, bool):
        return bool(value)
    if isinstance(fallback, (int, float)):
        try:
            return type(fallback)(value)
        except (TypeError, ValueError):
            return fallback
    return value


def load_execution_settings(section: Optional[Dict[str, Any]] = None) -> ExecutionSettings:
    """Build :class:`ExecutionSettings` from the ``execution`` settings section."""
    section = section or {}
    defaults = ExecutionSettings()
    values = {
        field.name: _read_value(section, field.name, getattr(defaults, field.name))
        for field in fields(ExecutionSettings)
    }
    return ExecutionSettings(**values)
