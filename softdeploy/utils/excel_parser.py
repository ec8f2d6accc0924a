"""Utility helpers to parse Excel step lists into test suite steps."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from openpyxl import load_workbook

REQUIRED_COLUMNS = ["Name", "Type"]

# Spreadsheet header -> key inside the step config
_CONFIG_COLUMNS = {
    "Method": "method",
    "URL": "url",
    "Selector": "selector",
    "Action": "action",
    "Value": "value",
    "Assertion": "type",
    "Expected Value": "expectedValue",
    "Expected Status": "expectedStatus",
    "Users": "users",
    "Duration": "duration",
    "Ramp Up": "rampUpTime",
}

_INTEGER_KEYS = {"expectedStatus", "users", "rampUpTime"}


def _coerce(key: str, value: Any) -> Any:
    if key in _INTEGER_KEYS:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Column value for {key} must be a number, got {value!r}")
    if isinstance(value, str):
        return value.strip()
    return value


def parse_steps_excel(path: Path) -> List[Dict[str, Any]]:
    """Parse the active sheet of *path* and return one step per data row."""
    workbook = load_workbook(path, data_only=True, read_only=True)
    try:
        sheet = workbook.active
        rows = sheet.iter_rows(values_only=True)
        try:
            headers = [str(value).strip() if value is not None else "" for value in next(rows)]
        except StopIteration:
            headers = []
        if not any(headers):
            raise ValueError("Excel sheet is empty")

        missing = [header for header in REQUIRED_COLUMNS if header not in headers]
        if missing:
            raise ValueError(f"Missing required columns: {', '.join(missing)}")

        column_index = {header: idx for idx, header in enumerate(headers) if header}
        steps: List[Dict[str, Any]] = []
        for row in rows:
            if all(value is None for value in row):
                continue
            config: Dict[str, Any] = {}
            for header, key in _CONFIG_COLUMNS.items():
                idx = column_index.get(header)
                if idx is None or idx >= len(row) or row[idx] is None:
                    continue
                config[key] = _coerce(key, row[idx])
            steps.append(
                {
                    "name": str(row[column_index["Name"]] or f"Step {len(steps) + 1}").strip(),
                    "type": str(row[column_index["Type"]] or "").strip(),
                    "config": config,
                }
            )
        return steps
    finally:
        workbook.close()
