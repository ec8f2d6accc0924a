"""Functional (browser) step executor backed by Playwright."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from softdeploy.config import ExecutionSettings
from softdeploy.executors.common import elapsed_ms, failure, step_config, step_value
from softdeploy.services.logging_service import logging_service

_logger = logging_service.get_logger(__name__)

VIEWPORT = {"width": 1280, "height": 720}
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]


@dataclass
class BrowserSession:
    """A launched browser together with the Playwright driver that owns it."""

    browser: Any
    playwright: Optional[Playwright] = None
    closed: bool = False

    async def new_page(self) -> Page:
        return await self.browser.new_page(viewport=VIEWPORT)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


async def launch_browser(settings: ExecutionSettings) -> BrowserSession:
    playwright = await async_playwright().start()
    try:
        browser: Browser = await playwright.chromium.launch(
            headless=settings.headless, args=BROWSER_ARGS
        )
    except Exception:
        await playwright.stop()
        raise
    return BrowserSession(browser=browser, playwright=playwright)


async def _first_matching_selector(page: Page, selector: str, timeout_ms: float) -> str:
    selectors: List[str] = [part.strip() for part in selector.split(",") if part.strip()]
    for candidate in selectors:
        try:
            await page.wait_for_selector(candidate, timeout=timeout_ms)
            return candidate
        except PlaywrightError:
            _logger.debug("Selector %s not found, trying next", candidate)
    raise LookupError(f"None of the selectors found: {', '.join(selectors)}")


async def _navigate(page: Page, step: Dict[str, Any], settings: ExecutionSettings) -> Dict[str, Any]:
    url = step_value(step, "url")
    if not url:
        raise ValueError("URL is required for navigation step")
    await page.goto(url, wait_until="networkidle", timeout=settings.navigation_timeout * 1000)
    return {"success": True, "message": f"Successfully navigated to {url}"}


async def _interact(page: Page, step: Dict[str, Any], settings: ExecutionSettings) -> Optional[Dict[str, Any]]:
    selector = step_value(step, "selector")
    action = step_value(step, "action")
    if not selector or not action:
        raise ValueError("Selector and action are required for interaction step")
    found = await _first_matching_selector(page, str(selector), settings.selector_timeout * 1000)
    value = step_value(step, "value", "")
    if action == "click":
        await page.click(found)
        return {"success": True, "message": f"Successfully clicked {found}"}
    if action == "type":
        await page.type(found, str(value))
        return {"success": True, "message": f"Successfully typed into {found}"}
    if action == "select":
        await page.select_option(found, str(value))
        return {"success": True, "message": f"Successfully selected option in {found}"}
    return None


async def _assert(page: Page, step: Dict[str, Any], settings: ExecutionSettings) -> Optional[Dict[str, Any]]:
    selector = step_value(step, "selector")
    kind = step_value(step, "assertion") or step_config(step).get("type")
    if not selector:
        raise ValueError("Selector is required for assertion step")
    await page.wait_for_selector(selector, timeout=settings.assertion_timeout * 1000)

    if kind == "elementExists":
        element = await page.query_selector(selector)
        return {
            "success": element is not None,
            "message": f"Element {selector} exists" if element is not None else f"Element {selector} not found",
        }
    if kind in ("textContains", "contains"):
        expected = str(step_value(step, "expectedValue", ""))
        text = await page.text_content(selector) or ""
        contains = expected in text
        return {
            "success": contains,
            "message": f'Text contains "{expected}"' if contains else f'Text does not contain "{expected}"',
        }
    if kind == "visible":
        visible = await page.is_visible(selector)
        return {
            "success": visible,
            "message": f"Element {selector} is visible" if visible else f"Element {selector} is not visible",
        }
    return None


_HANDLERS = {
    "navigation": _navigate,
    "interaction": _interact,
    "assertion": _assert,
}


async def execute_functional_step(
    step: Dict[str, Any],
    session: BrowserSession,
    settings: ExecutionSettings,
) -> Dict[str, Any]:
    """Run one browser step on a fresh page of *session*."""
    started = time.monotonic()
    try:
        page = await session.new_page()
        try:
            handler = _HANDLERS.get(step.get("type", ""))
            result = await handler(page, step, settings) if handler else None
        finally:
            await page.close()
        if result is None:
            result = {"success": False, "message": f"Unknown step type: {step.get('type')}"}
        return {**result, "duration": elapsed_ms(started)}
    except (PlaywrightError, LookupError, ValueError) as exc:
        message = str(exc) or exc.__class__.__name__
        _logger.warning("Functional step %r failed: %s", step.get("name"), message)
        return failure(f"Functional step failed: {message}", started, error=message)
