"""Logging setup for the SoftDeploy backend."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from softdeploy.utils.paths import LOG_DIR

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "softdeploy.log"
LOG_LEVEL_ENV = "SOFTDEPLOY_LOG_LEVEL"


def _level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


class LoggingService:
    """Configures the root logger once: console output plus a log file in the data directory."""

    def __init__(self, log_dir: Path | None = None) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
        self._configured = False

    @property
    def log_file(self) -> Path:
        return self.log_dir / LOG_FILE_NAME

    def configure(self, level: Optional[int] = None) -> None:
        if self._configured:
            return
        self.log_dir.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=level if level is not None else _level_from_env(),
            format=LOG_FORMAT,
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(self.log_file, encoding="utf-8"),
            ],
        )
        # one line per request is enough from the HTTP client
        logging.getLogger("httpx").setLevel(logging.WARNING)
        self._configured = True

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        self.configure()
        return logging.getLogger(name)


logging_service = LoggingService()
