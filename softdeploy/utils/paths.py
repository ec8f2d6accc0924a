from __future__ import annotations

import os
from pathlib import Path


PACKAGE_DIR = Path(__file__).resolve().parent.parent
ROOT_DIR = PACKAGE_DIR.parent
DATA_DIR = Path(os.environ.get("SOFTDEPLOY_DATA_DIR", ROOT_DIR / "data"))
SETTINGS_DIR = DATA_DIR / "settings"
SUITES_FILE = DATA_DIR / "test_suites.json"
RUNS_FILE = DATA_DIR / "runs.json"
ARTIFACTS_DIR = DATA_DIR / "artifacts"
CYPRESS_SPEC_DIR = ARTIFACTS_DIR / "cypress-tests"
LOG_DIR = DATA_DIR / "logs"
UPLOAD_DIR = DATA_DIR / "tmp"


def ensure_data_dirs(data_dir: Path | None = None) -> None:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    for directory in (
        base,
        base / SETTINGS_DIR.name,
        base / ARTIFACTS_DIR.name,
        base / ARTIFACTS_DIR.name / CYPRESS_SPEC_DIR.name,
        base / LOG_DIR.name,
    ):
        directory.mkdir(parents=True, exist_ok=True)
