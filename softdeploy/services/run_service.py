"""Persistent ledger of test runs stored in a single JSON file."""
from __future__ import annotations

import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional

from softdeploy.services.logging_service import logging_service
from softdeploy.utils.ids import new_id, parse_iso, utc_now_iso
from softdeploy.utils.json_store import load_json, save_json
from softdeploy.utils.paths import RUNS_FILE

FINISHED_STATUSES = ("completed", "failed", "stopped")
SUITE_SNAPSHOT_KEYS = ("name", "description", "testType", "toolId", "baseUrl", "environment", "steps")


class RunNotFoundError(LookupError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run {run_id} not found")
        self.run_id = run_id


def _empty_results(total_steps: int) -> Dict[str, Any]:
    return {
        "totalSteps": total_steps,
        "passedSteps": 0,
        "failedSteps": 0,
        "skippedSteps": 0,
        "summary": {"total": total_steps, "passed": 0, "failed": 0, "skipped": 0, "duration": 0},
        "steps": [],
    }


def _duration_ms(run: Dict[str, Any]) -> Optional[int]:
    if not run.get("startedAt") or not run.get("completedAt"):
        return None
    delta = parse_iso(run["completedAt"]) - parse_iso(run["startedAt"])
    return int(delta.total_seconds() * 1000)


class RunService:
    """CRUD and lifecycle transitions for test runs."""

    def __init__(self, runs_file: Path | None = None) -> None:
        self.runs_file = Path(runs_file) if runs_file is not None else RUNS_FILE
        self._lock = threading.RLock()
        self._logger = logging_service.get_logger(__name__)

    # -- persistence -------------------------------------------------------

    def get_all_runs(self) -> List[Dict[str, Any]]:
        with self._lock:
            runs = load_json(self.runs_file, [])
        return runs if isinstance(runs, list) else []

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        for run in self.get_all_runs():
            if run.get("id") == run_id:
                return run
        return None

    def save_run(self, run: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            runs = self.get_all_runs()
            for index, existing in enumerate(runs):
                if existing.get("id") == run["id"]:
                    runs[index] = run
                    break
            else:
                runs.append(run)
            save_json(self.runs_file, runs)
        return run

    def _update(self, run_id: str, mutate) -> Dict[str, Any]:
        with self._lock:
            run = self.get_run(run_id)
            if run is None:
                raise RunNotFoundError(run_id)
            mutate(run)
            return self.save_run(run)

    # -- creation ----------------------------------------------------------

    def _new_run(
        self,
        run_id: str,
        test_suite: Dict[str, Any],
        project_id: Optional[str],
        user_id: Optional[str],
    ) -> Dict[str, Any]:
        steps = test_suite.get("steps") or []
        snapshot = {key: deepcopy(test_suite.get(key)) for key in SUITE_SNAPSHOT_KEYS}
        snapshot["steps"] = deepcopy(steps)
        return {
            "id": run_id,
            "testSuiteId": test_suite.get("id"),
            "projectId": project_id,
            "userId": user_id,
            "status": "queued",
            "testSuite": snapshot,
            "createdAt": utc_now_iso(),
            "startedAt": None,
            "completedAt": None,
            "duration": None,
            "results": _empty_results(len(steps)),
            "artifacts": {
                "cypressReport": None,
                "screenshots": [],
                "videos": [],
            },
            "logs": [],
            "error": None,
        }

    def create_run(self, test_suite: Dict[str, Any], project_id: str, user_id: str) -> Dict[str, Any]:
        run = self._new_run(new_id("run"), test_suite, project_id, user_id)
        self.save_run(run)
        self._logger.info("Run %s queued for suite %s", run["id"], test_suite.get("name"))
        return run

    def record_execution(
        self,
        execution_id: str,
        test_suite: Dict[str, Any],
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        existing = self.get_run(execution_id)
        if existing is not None:
            return existing
        run = self._new_run(
            execution_id,
            test_suite,
            project_id or test_suite.get("projectId"),
            user_id or test_suite.get("userId"),
        )
        return self.save_run(run)

    # -- lifecycle ---------------------------------------------------------

    def add_log(self, run_id: str, level: str, message: str) -> Dict[str, Any]:
        entry = {"timestamp": utc_now_iso(), "level": level, "message": message}
        self._update(run_id, lambda run: run.setdefault("logs", []).append(entry))
        return entry

    def mark_running(self, run_id: str) -> Dict[str, Any]:
        def mutate(run: Dict[str, Any]) -> None:
            run["status"] = "running"
            run["startedAt"] = utc_now_iso()

        return self._update(run_id, mutate)

    def record_step(self, run_id: str, step_result: Dict[str, Any]) -> Dict[str, Any]:
        def mutate(run: Dict[str, Any]) -> None:
            results = run["results"]
            success = bool(step_result.get("success"))
            results["steps"].append(
                {
                    "stepNumber": step_result.get("stepIndex", len(results["steps"]) + 1),
                    "name": step_result.get("stepName"),
                    "success": success,
                    "duration": step_result.get("duration", 0),
                    "message": step_result.get("message"),
                    "error": step_result.get("error"),
                    "timestamp": utc_now_iso(),
                }
            )
            key = "passedSteps" if success else "failedSteps"
            results[key] += 1
            results["summary"]["passed"] = results["passedSteps"]
            results["summary"]["failed"] = results["failedSteps"]

        return self._update(run_id, mutate)

    def _finish(self, run: Dict[str, Any], status: str) -> None:
        run["status"] = status
        run["completedAt"] = utc_now_iso()
        run["duration"] = _duration_ms(run)
        results = run["results"]
        executed = results["passedSteps"] + results["failedSteps"]
        results["skippedSteps"] = max(results["totalSteps"] - executed, 0)
        results["summary"]["skipped"] = results["skippedSteps"]
        results["summary"]["duration"] = run["duration"] or 0

    def complete_run(self, run_id: str, final_result: Dict[str, Any]) -> Dict[str, Any]:
        def mutate(run: Dict[str, Any]) -> None:
            results = run["results"]
            # Cypress runs report their counts as a whole instead of per step
            if not results["steps"] and ("passedSteps" in final_result or "failedSteps" in final_result):
                results["passedSteps"] = int(final_result.get("passedSteps", 0))
                results["failedSteps"] = int(final_result.get("failedSteps", 0))
                results["summary"]["passed"] = results["passedSteps"]
                results["summary"]["failed"] = results["failedSteps"]
            artifacts = final_result.get("artifacts")
            if isinstance(artifacts, dict):
                run.setdefault("artifacts", {}).update(artifacts)
            self._finish(run, "completed")
            run["finalResult"] = final_result
            run.setdefault("logs", []).append(
                {
                    "timestamp": utc_now_iso(),
                    "level": "info",
                    "message": (
                        f"Test execution completed: {results['passedSteps']}/"
                        f"{results['totalSteps']} steps passed"
                    ),
                }
            )

        return self._update(run_id, mutate)

    def fail_run(self, run_id: str, error: str) -> Dict[str, Any]:
        def mutate(run: Dict[str, Any]) -> None:
            self._finish(run, "failed")
            run["error"] = error
            run.setdefault("logs", []).append(
                {"timestamp": utc_now_iso(), "level": "error", "message": f"Execution failed: {error}"}
            )

        return self._update(run_id, mutate)

    def stop_run(self, run_id: str, reason: str = "Test execution stopped by user") -> Dict[str, Any]:
        """Mark a queued or running run as stopped; finished runs are returned unchanged."""
        def mutate(run: Dict[str, Any]) -> None:
            if run["status"] in FINISHED_STATUSES:
                return
            self._finish(run, "stopped")
            run.setdefault("logs", []).append(
                {"timestamp": utc_now_iso(), "level": "info", "message": reason}
            )

        return self._update(run_id, mutate)

    # -- queries -----------------------------------------------------------

    def list_runs(
        self,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        runs = self.get_all_runs()
        if project_id:
            runs = [run for run in runs if run.get("projectId") == project_id]
        if user_id:
            runs = [run for run in runs if run.get("userId") == user_id]
        if status:
            runs = [run for run in runs if run.get("status") == status]
        runs.sort(key=lambda run: run.get("createdAt") or "", reverse=True)

        total = len(runs)
        return {
            "data": runs[offset:offset + limit],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        }

    @staticmethod
    def calculate_progress(run: Dict[str, Any]) -> int:
        status = run.get("status")
        if status == "running":
            total = len(run.get("testSuite", {}).get("steps") or [])
            if total == 0:
                return 0
            return round(len(run["results"]["steps"]) / total * 100)
        if status in FINISHED_STATUSES:
            return 100
        return 0

    def get_run_status(self, run_id: str) -> Optional[Dict[str, Any]]:
        run = self.get_run(run_id)
        if run is None:
            return None
        return {
            "id": run["id"],
            "status": run["status"],
            "progress": self.calculate_progress(run),
            "startedAt": run.get("startedAt"),
            "completedAt": run.get("completedAt"),
            "duration": run.get("duration"),
        }
