"""Cypress runner: renders a suite into a spec file and runs the Cypress CLI."""
from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from softdeploy.config import ExecutionSettings
from softdeploy.executors.common import resolve_url, step_config, step_value
from softdeploy.services.logging_service import logging_service
from softdeploy.utils.json_store import load_json

_logger = logging_service.get_logger(__name__)

_PASSING_RE = re.compile(r"(\d+) passing")
_FAILING_RE = re.compile(r"(\d+) failing")

# cy.get(...) commands an interaction step may call
INTERACTION_ACTIONS = ("click", "dblclick", "type", "clear", "check", "uncheck", "select")
MEDIA_KINDS = ("screenshots", "videos")


def _js(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _step_lines(step: Dict[str, Any], base_url: str) -> List[str]:
    step_type = step.get("type")
    config = step_config(step)
    lines: List[str] = []

    if step_type == "navigation":
        url = resolve_url(str(step_value(step, "url", "")), None, base_url)
        lines.append(f"cy.visit({_js(url)})")
        wait_for = step_value(step, "waitFor")
        if wait_for:
            lines.append(f"cy.wait({int(wait_for)})")
    elif step_type == "click":
        lines.append(f"cy.get({_js(step_value(step, 'selector'))}).click()")
    elif step_type == "type":
        lines.append(
            f"cy.get({_js(step_value(step, 'selector'))}).type({_js(str(step_value(step, 'value', '')))})"
        )
    elif step_type == "assert":
        lines.append(
            f"cy.get({_js(step_value(step, 'selector'))})"
            f".should({_js(step_value(step, 'assertion'))}, {_js(step_value(step, 'expectedValue'))})"
        )
    elif step_type == "interaction":
        action = str(step_value(step, "action", "click"))
        if action not in INTERACTION_ACTIONS:
            lines.append(f"cy.log({_js(f'Unknown action: {action}')})")
            return lines
        value = step_value(step, "value")
        argument = _js(str(value)) if value else ""
        lines.append(f"cy.get({_js(step_value(step, 'selector'))}).{action}({argument})")
        wait_after = config.get("waitAfter")
        if wait_after:
            lines.append(f"cy.wait({int(wait_after)})")
    elif step_type == "assertion":
        assertion = step_value(step, "assertion") or config.get("type")
        expected = step_value(step, "expectedValue")
        arguments = _js(assertion) + (f", {_js(expected)}" if expected else "")
        lines.append(f"cy.get({_js(step_value(step, 'selector'))}).should({arguments})")
    elif step_type == "api":
        method = str(step_value(step, "method", "GET")).upper()
        request: Dict[str, Any] = {
            "method": method,
            "url": resolve_url(str(step_value(step, "url", "")), None, base_url),
        }
        headers = step_value(step, "headers")
        if headers:
            request["headers"] = headers
        body = step_value(step, "body")
        if body is not None:
            request["body"] = body
        lines.append(f"cy.request({_js(request)}).then((response) => {{")
        lines.append(f"  expect(response.status).to.eq({int(step_value(step, 'expectedStatus', 200))})")
        expected_response = step_value(step, "expectedResponse")
        if expected_response:
            lines.append(f"  expect(response.body).to.deep.include({_js(expected_response)})")
        lines.append("})")
    else:
        lines.append(f"cy.log({_js(f'Unknown step type: {step_type}')})")
    return lines


def generate_cypress_script(suite: Dict[str, Any], default_base_url: str = "") -> str:
    """Render *suite* as a Cypress spec with one ``it`` block per step."""
    base_url = suite.get("baseUrl") or default_base_url
    out = [f"describe({_js(suite.get('name', 'Test suite'))}, () => {{"]
    for index, step in enumerate(suite.get("steps", []), start=1):
        out.append(f"  it({_js(f'Step {index}: ' + str(step.get('name', '')))}, () => {{")
        if step.get("description"):
            out.append(f"    cy.log({_js(step['description'])})")
        out.extend(f"    {line}" for line in _step_lines(step, base_url))
        out.append("  })")
    out.append("})")
    return "\n".join(out) + "\n"


def parse_mocha_summary(output: str) -> Dict[str, int]:
    passed = _PASSING_RE.search(output)
    failed = _FAILING_RE.search(output)
    return {
        "passedSteps": int(passed.group(1)) if passed else 0,
        "failedSteps": int(failed.group(1)) if failed else 0,
    }


def _report_counts(report_path: Path) -> Optional[Dict[str, int]]:
    """Step counts from the JSON reporter's ``stats`` block, if the report was written."""
    report = load_json(report_path, None)
    if not isinstance(report, dict) or not isinstance(report.get("stats"), dict):
        return None
    stats = report["stats"]
    return {
        "passedSteps": int(stats.get("passes") or 0),
        "failedSteps": int(stats.get("failures") or 0),
    }


def collect_media(artifacts_dir: Path, execution_id: str) -> Dict[str, List[str]]:
    """Screenshots and videos whose path mentions *execution_id*, relative to *artifacts_dir*."""
    media: Dict[str, List[str]] = {}
    for kind in MEDIA_KINDS:
        folder = artifacts_dir / kind
        files = sorted(path for path in folder.rglob("*") if path.is_file()) if folder.is_dir() else []
        media[kind] = [
            path.relative_to(artifacts_dir).as_posix()
            for path in files
            if execution_id in path.relative_to(folder).as_posix()
        ]
    return media


async def run_cypress_suite(
    suite: Dict[str, Any],
    execution_id: str,
    spec_dir: Path,
    settings: ExecutionSettings,
    command: Optional[List[str]] = None,
    artifacts_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """Write the generated spec, run Cypress headless and collect its outcome and artifacts."""
    artifacts_dir = artifacts_dir or spec_dir.parent
    spec_dir.mkdir(parents=True, exist_ok=True)
    spec_path = spec_dir / f"{execution_id}.spec.js"
    report_path = artifacts_dir / f"{execution_id}-results.json"
    report_path.unlink(missing_ok=True)
    spec_path.write_text(generate_cypress_script(suite, settings.default_base_url), encoding="utf-8")
    argv = command or [
        "npx", "cypress", "run",
        "--spec", str(spec_path),
        "--headless",
        "--reporter", "json",
        "--reporter-options", f"output={report_path}",
        "--config", (
            f"screenshotsFolder={artifacts_dir / 'screenshots'},"
            f"videosFolder={artifacts_dir / 'videos'}"
        ),
    ]
    _logger.info("Executing Cypress suite %s: %s", suite.get("name"), " ".join(argv))
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=settings.cypress_timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise RuntimeError(f"Cypress run timed out after {settings.cypress_timeout:g}s")
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise
    finally:
        spec_path.unlink(missing_ok=True)

    output = stdout.decode("utf-8", errors="replace")
    error_output = stderr.decode("utf-8", errors="replace")
    exit_code = process.returncode
    counts = _report_counts(report_path) or parse_mocha_summary(output + error_output)
    return {
        "success": exit_code == 0,
        "output": output,
        "errorOutput": error_output,
        "exitCode": exit_code,
        "executionId": execution_id,
        **counts,
        "artifacts": {
            "cypressReport": report_path.name if report_path.exists() else None,
            **collect_media(artifacts_dir, execution_id),
        },
    }
