"""Identifier and timestamp helpers shared by the stores and the engine."""
from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone

_ALPHABET = string.ascii_lowercase + string.digits


def _suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_id(prefix: str, separator: str = "_") -> str:
    """Return ``<prefix><sep><epoch ms><sep><9 random chars>``."""
    return f"{prefix}{separator}{int(time.time() * 1000)}{separator}{_suffix()}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
