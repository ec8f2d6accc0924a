"""Shared fixtures for the SoftDeploy tests.

- fast_settings: execution options with short timeouts and intervals
- mock_client_factory: httpx clients served by an in-memory handler
- FakeBrowser / FakePage: stand-ins for the Playwright browser
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from softdeploy.config import ExecutionSettings
from softdeploy.executors import BrowserSession
from softdeploy.services.event_bus import EventBus
from softdeploy.services.run_service import RunService
from softdeploy.services.test_engine import TestEngine

# =============================================================================
# HTTP
# =============================================================================


def json_response(status_code: int = 200, payload: Any = None) -> httpx.Response:
    return httpx.Response(status_code, json=payload if payload is not None else {"ok": True})


class RecordingHandler:
    """httpx.MockTransport handler that records requests and serves canned responses."""

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        self.requests: List[httpx.Request] = []
        self._responder = responder or (lambda request: json_response())

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def mock_client_factory(handler: RecordingHandler) -> Callable[[], httpx.AsyncClient]:
    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


# =============================================================================
# Browser
# =============================================================================


class FakePage:
    def __init__(self, elements: Dict[str, str], hidden: Optional[set] = None) -> None:
        self.elements = elements
        self.hidden = hidden or set()
        self.actions: List[tuple] = []
        self.closed = False

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.actions.append(("goto", url, kwargs.get("wait_until")))

    async def wait_for_selector(self, selector: str, timeout: Optional[float] = None) -> None:
        if selector not in self.elements:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def click(self, selector: str) -> None:
        self.actions.append(("click", selector))

    async def type(self, selector: str, value: str) -> None:
        self.actions.append(("type", selector, value))

    async def select_option(self, selector: str, value: str) -> None:
        self.actions.append(("select", selector, value))

    async def query_selector(self, selector: str) -> Optional[object]:
        return object() if selector in self.elements else None

    async def text_content(self, selector: str) -> Optional[str]:
        return self.elements.get(selector)

    async def is_visible(self, selector: str) -> bool:
        return selector in self.elements and selector not in self.hidden

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, elements: Optional[Dict[str, str]] = None, hidden: Optional[set] = None) -> None:
        self.elements = elements or {}
        self.hidden = hidden or set()
        self.pages: List[FakePage] = []
        self.viewports: List[Any] = []
        self.closed = False

    async def new_page(self, viewport: Any = None) -> FakePage:
        page = FakePage(self.elements, self.hidden)
        self.viewports.append(viewport)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser({"#login": "Log in", "h1": "Welcome back", "select#country": ""})


@pytest.fixture
def browser_session(fake_browser: FakeBrowser) -> BrowserSession:
    return BrowserSession(browser=fake_browser)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def fast_settings() -> ExecutionSettings:
    return ExecutionSettings(
        default_base_url="https://api.example.test",
        api_timeout=5.0,
        load_request_timeout=1.0,
        load_request_interval=0.01,
        load_error_penalty_ms=5000,
        selector_timeout=0.1,
        assertion_timeout=0.1,
        navigation_timeout=1.0,
        cypress_timeout=5.0,
    )


@pytest.fixture
def run_service(tmp_path) -> RunService:
    return RunService(tmp_path / "runs.json")


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def engine(event_bus, run_service, fast_settings, mock_client_factory, fake_browser, tmp_path) -> TestEngine:
    async def launcher(settings: ExecutionSettings) -> BrowserSession:
        return BrowserSession(browser=fake_browser)

    return TestEngine(
        event_bus,
        run_service,
        settings=fast_settings,
        spec_dir=tmp_path / "cypress-tests",
        browser_launcher=launcher,
        client_factory=mock_client_factory,
    )


def api_suite(**overrides: Any) -> Dict[str, Any]:
    suite: Dict[str, Any] = {
        "name": "Users API",
        "testType": "API",
        "toolId": "axios",
        "baseUrl": "https://api.example.test",
        "steps": [
            {"name": "List users", "config": {"url": "/users", "method": "GET"}},
            {"name": "Create user", "config": {"url": "/users", "method": "POST", "body": {"name": "Ada"}}},
        ],
    }
    suite.update(overrides)
    return suite
