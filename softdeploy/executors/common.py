"""Helpers shared by the step executors."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def step_config(step: Dict[str, Any]) -> Dict[str, Any]:
    config = step.get("config")
    return config if isinstance(config, dict) else {}


def step_value(step: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Read *key* from the flat step first, then from its ``config`` object."""
    value = step.get(key)
    if value is None or value == "":
        value = step_config(step).get(key)
    return default if value is None else value


def resolve_url(url: str, base_url: Optional[str], default_base_url: str) -> str:
    if url.startswith("http"):
        return url
    return f"{base_url or default_base_url}{url}"


def failure(message: str, started: float, error: Optional[str] = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "success": False,
        "duration": elapsed_ms(started),
        "message": message,
    }
    if error is not None:
        result["error"] = error
    return result
