"""API step executor backed by httpx."""
from __future__ import annotations

import base64
import time
from typing import Any, Dict, List, Optional

import httpx

from softdeploy.config import ExecutionSettings
from softdeploy.executors.common import elapsed_ms, failure, resolve_url, step_config, step_value
from softdeploy.services.logging_service import logging_service

_logger = logging_service.get_logger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


def _auth_header(auth: Optional[Dict[str, Any]]) -> Optional[str]:
    if not isinstance(auth, dict):
        return None
    if auth.get("type") == "bearer":
        return f"Bearer {auth.get('token', '')}"
    if auth.get("type") == "basic":
        raw = f"{auth.get('username', '')}:{auth.get('password', '')}".encode("utf-8")
        return f"Basic {base64.b64encode(raw).decode('ascii')}"
    return None


def _validate(
    response: httpx.Response,
    duration: int,
    step: Dict[str, Any],
    response_data: Any,
) -> List[str]:
    validation = step_value(step, "validation", {}) or {}
    problems: List[str] = []

    expected_status = step_value(step, "expectedStatus") or validation.get("statusCode")
    if expected_status and response.status_code != int(expected_status):
        problems.append(
            f"Status code mismatch: expected {expected_status}, got {response.status_code}"
        )
    elif not expected_status and response.is_error:
        problems.append(f"Request failed with status code {response.status_code}")

    max_response_time = validation.get("responseTime")
    if max_response_time and duration > float(max_response_time):
        problems.append(f"Response time too slow: {duration}ms > {max_response_time}ms")

    expected_response = step_value(step, "expectedResponse") or validation.get("responseData")
    if expected_response:
        if not isinstance(response_data, dict):
            problems.append("Response validation error: response body is not a JSON object")
        else:
            for key, expected in expected_response.items():
                actual = response_data.get(key)
                if actual != expected:
                    problems.append(
                        f"Response data mismatch for '{key}': expected {expected}, got {actual}"
                    )
    return problems


def _response_data(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


async def execute_api_step(
    step: Dict[str, Any],
    suite: Dict[str, Any],
    client: httpx.AsyncClient,
    settings: ExecutionSettings,
) -> Dict[str, Any]:
    """Perform the HTTP request described by *step* and validate the response."""
    started = time.monotonic()
    try:
        url = step_value(step, "url")
        if not url:
            raise ValueError("No URL provided for API step")
        method = str(step.get("action") or step_config(step).get("method") or "GET").upper()
        headers = {"Content-Type": "application/json"}
        headers.update(step_value(step, "headers", {}) or {})
        params = step_value(step, "params", {}) or {}
        body = step_value(step, "body")
        authorization = _auth_header(step_value(step, "auth"))
        if authorization:
            headers["Authorization"] = authorization

        full_url = resolve_url(str(url), suite.get("baseUrl"), settings.default_base_url)
        _logger.info("API step %s %s", method, full_url)
        response = await client.request(
            method,
            full_url,
            params={key: str(value) for key, value in params.items()},
            headers={key: str(value) for key, value in headers.items()},
            json=body if body is not None and method in BODY_METHODS else None,
            timeout=settings.api_timeout,
        )
        duration = elapsed_ms(started)
        response_data = _response_data(response)
        problems = _validate(response, duration, step, response_data)
        success = not problems
        return {
            "success": success,
            "status": response.status_code,
            "duration": duration,
            "responseData": response_data,
            "validationResults": problems,
            "message": "API call successful" if success else f"API call failed: {', '.join(problems)}",
        }
    except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError, AttributeError) as exc:
        message = str(exc) or exc.__class__.__name__
        _logger.warning("API step %r failed: %s", step.get("name"), message)
        return failure(f"API call failed: {message}", started, error=message)
