"""Manage CRUD operations for stored test suites."""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from softdeploy.utils.ids import new_id, utc_now_iso
from softdeploy.utils.json_store import load_json, save_json
from softdeploy.utils.paths import SUITES_FILE

REQUIRED_FIELDS = ("name", "projectId", "baseUrl")


class SuiteNotFoundError(LookupError):
    def __init__(self, suite_id: str) -> None:
        super().__init__("Test suite not found")
        self.suite_id = suite_id


class SuiteStore:
    def __init__(self, suites_file: Path | None = None) -> None:
        self.suites_file = Path(suites_file) if suites_file is not None else SUITES_FILE
        self._lock = threading.RLock()

    def list_suites(self, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            suites = load_json(self.suites_file, [])
        if not isinstance(suites, list):
            return []
        if project_id:
            suites = [suite for suite in suites if suite.get("projectId") == project_id]
        return suites

    def get_suite(self, suite_id: str) -> Dict[str, Any]:
        for suite in self.list_suites():
            if suite.get("id") == suite_id:
                return suite
        raise SuiteNotFoundError(suite_id)

    def create_suite(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(REQUIRED_FIELDS)}")
        now = utc_now_iso()
        suite = {
            "id": new_id("suite", separator="-"),
            "name": payload["name"],
            "description": payload.get("description", ""),
            "projectId": payload["projectId"],
            "testType": payload.get("testType") or "API",
            "toolId": payload.get("toolId") or "axios",
            "baseUrl": payload["baseUrl"],
            "environment": payload.get("environment") or "development",
            "stopOnFailure": bool(payload.get("stopOnFailure", False)),
            "steps": payload.get("steps") or [],
            "createdAt": now,
            "updatedAt": now,
        }
        with self._lock:
            suites = self.list_suites()
            suites.append(suite)
            save_json(self.suites_file, suites)
        return suite

    def update_suite(self, suite_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            suites = self.list_suites()
            for index, suite in enumerate(suites):
                if suite.get("id") == suite_id:
                    merged = {**suite, **updates, "id": suite_id, "updatedAt": utc_now_iso()}
                    suites[index] = merged
                    save_json(self.suites_file, suites)
                    return merged
        raise SuiteNotFoundError(suite_id)

    def delete_suite(self, suite_id: str) -> Dict[str, Any]:
        with self._lock:
            suites = self.list_suites()
            for index, suite in enumerate(suites):
                if suite.get("id") == suite_id:
                    deleted = suites.pop(index)
                    save_json(self.suites_file, suites)
                    return deleted
        raise SuiteNotFoundError(suite_id)
