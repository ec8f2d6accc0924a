"""Performance step executor: simulated users issuing requests at a fixed interval."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List

import httpx

from softdeploy.config import ExecutionSettings
from softdeploy.executors.common import elapsed_ms, failure, resolve_url, step_config
from softdeploy.services.logging_service import logging_service

_logger = logging_service.get_logger(__name__)

LOAD_TYPES = ("load", "loadTest")
STRESS_TYPES = ("stress", "stressTest")
STRESS_ERROR_RATE = 0.1
DEFAULT_USERS = 5
DEFAULT_DURATION = 10


def parse_duration(value: Any) -> float:
    """Accept ``30``, ``2.5`` or ``"30s"`` and return seconds."""
    if value is None or value == "":
        return DEFAULT_DURATION
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().lower()
    if text.endswith("s"):
        text = text[:-1]
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"Invalid duration: {value}")


async def simulate_user(
    client: httpx.AsyncClient,
    url: str,
    duration: float,
    settings: ExecutionSettings,
    delay: float = 0,
) -> Dict[str, float]:
    """Issue GET requests against *url* until *duration* seconds have passed."""
    if delay > 0:
        await asyncio.sleep(delay)

    deadline = time.monotonic() + duration
    requests = 0
    errors = 0
    total_response_time = 0.0

    while time.monotonic() < deadline:
        request_started = time.monotonic()
        try:
            response = await client.get(url, timeout=settings.load_request_timeout)
            total_response_time += elapsed_ms(request_started)
            requests += 1
            if not response.content:
                errors += 1
        except (httpx.HTTPError, httpx.InvalidURL):
            errors += 1
            total_response_time += settings.load_error_penalty_ms
        await asyncio.sleep(settings.load_request_interval)

    return {
        "requests": requests,
        "errors": errors,
        "avgResponseTime": total_response_time / requests if requests > 0 else 0,
    }


async def _run_load(
    client: httpx.AsyncClient,
    step: Dict[str, Any],
    suite: Dict[str, Any],
    settings: ExecutionSettings,
    multiplier: int,
) -> Dict[str, Any]:
    config = step_config(step)
    url = config.get("url")
    if not url:
        raise ValueError("URL is required for performance step")
    users = int(config.get("users") or config.get("vus") or DEFAULT_USERS) * multiplier
    if users < 1:
        raise ValueError(f"Invalid user count: {users}")
    duration = parse_duration(config.get("duration"))
    ramp_up = float(config.get("rampUpTime") or 0)
    full_url = resolve_url(str(url), suite.get("baseUrl"), settings.default_base_url)
    try:
        httpx.URL(full_url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid URL {full_url!r}: {exc}")

    _logger.info("Performance step: %s users for %ss against %s", users, duration, full_url)
    started = time.monotonic()
    user_results: List[Dict[str, float]] = await asyncio.gather(
        *(
            simulate_user(client, full_url, duration, settings, delay=ramp_up * index / users)
            for index in range(users)
        )
    )
    total_time = max(time.monotonic() - started, 1e-9)
    total_requests = int(sum(result["requests"] for result in user_results))
    total_errors = int(sum(result["errors"] for result in user_results))
    avg_response_time = sum(result["avgResponseTime"] for result in user_results) / len(user_results)
    return {
        "totalRequests": total_requests,
        "totalErrors": total_errors,
        "avgResponseTime": avg_response_time,
        "requestsPerSecond": total_requests / total_time,
        "duration": duration,
    }


async def execute_performance_step(
    step: Dict[str, Any],
    suite: Dict[str, Any],
    client: httpx.AsyncClient,
    settings: ExecutionSettings,
) -> Dict[str, Any]:
    started = time.monotonic()
    step_type = step.get("type")
    try:
        if step_type in LOAD_TYPES:
            label, multiplier = "Load", 1
        elif step_type in STRESS_TYPES:
            label, multiplier = "Stress", 2
        else:
            return failure(f"Unknown performance step type: {step_type}", started)

        metrics = await _run_load(client, step, suite, settings, multiplier)
        duration = metrics.pop("duration")
        if multiplier == 1:
            success = metrics["totalErrors"] == 0
        else:
            success = metrics["totalErrors"] < metrics["totalRequests"] * STRESS_ERROR_RATE
        return {
            "success": success,
            "duration": duration,
            "message": (
                f"{label} test completed: {metrics['totalRequests']} requests, "
                f"{metrics['totalErrors']} errors, avg {metrics['avgResponseTime']:.2f}ms"
            ),
            "metrics": metrics,
        }
    except (ValueError, TypeError) as exc:
        _logger.warning("Performance step %r failed: %s", step.get("name"), exc)
        return failure(f"Performance step failed: {exc}", started, error=str(exc))
