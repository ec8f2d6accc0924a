"""Validation of incoming test suite payloads."""
from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlparse

VALID_TEST_TYPES = ("API", "Functional", "Performance")
VALID_TOOLS = ("inbuilt", "axios", "puppeteer", "k6", "cypress", "playwright")


class SuiteValidationError(ValueError):
    """Raised when a test suite payload cannot be executed."""


def suite_tool(suite: Dict[str, Any]) -> Optional[str]:
    """Return the lower-cased tool id of *suite* (``toolId`` wins over ``tool``)."""
    tool = suite.get("toolId") or suite.get("tool")
    if not tool:
        return None
    return str(tool).strip().lower()


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_test_suite(suite: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(suite, dict) or not suite.get("name") or not suite.get("testType"):
        raise SuiteValidationError("Invalid test suite data: name and testType are required")

    test_type = suite["testType"]
    if test_type not in VALID_TEST_TYPES:
        raise SuiteValidationError(
            f"Invalid test type: {test_type}. Valid types are: {', '.join(VALID_TEST_TYPES)}"
        )

    tool = suite_tool(suite)
    if tool is not None and tool not in VALID_TOOLS:
        raise SuiteValidationError(
            f"Invalid tool ID: {suite.get('toolId') or suite.get('tool')}. "
            f"Valid tools are: {', '.join(VALID_TOOLS)}"
        )

    base_url = suite.get("baseUrl")
    if base_url and not is_absolute_url(str(base_url)):
        raise SuiteValidationError(f"Invalid base URL: {base_url}")

    steps = suite.get("steps", [])
    if steps is None:
        steps = []
    if not isinstance(steps, list) or not all(isinstance(step, dict) for step in steps):
        raise SuiteValidationError("Invalid test suite data: steps must be a list of objects")
    return suite


def validate_run_request(
    test_suite: Optional[Dict[str, Any]],
    project_id: Optional[str],
    user_id: Optional[str],
) -> Dict[str, Any]:
    if not test_suite or not project_id or not user_id:
        raise SuiteValidationError("Missing required fields: testSuite, projectId, userId")
    if not test_suite.get("name") or not test_suite.get("steps"):
        raise SuiteValidationError("Invalid test suite: must have name and at least one step")
    return validate_test_suite(test_suite)
