"""Step executors dispatched by the test engine."""
from __future__ import annotations

from .api import execute_api_step
from .cypress import generate_cypress_script, run_cypress_suite
from .functional import BrowserSession, execute_functional_step, launch_browser
from .performance import execute_performance_step, simulate_user

__all__ = [
    "BrowserSession",
    "execute_api_step",
    "execute_functional_step",
    "execute_performance_step",
    "generate_cypress_script",
    "launch_browser",
    "run_cypress_suite",
    "simulate_user",
]
