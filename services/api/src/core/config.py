

"""Runtime settings.

Everything is injected into the Lambda as environment variables. Settings
are read once per container and cached, like any other cold-start resource.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from core.request import MAX_BODY_BYTES


@dataclass(frozen=True)
class Settings:
    max_body_bytes: int = MAX_BODY_BYTES
    log_level: str = "INFO"
    cors_allow_origin: str = "*"


_settings: Optional[Settings] = None


def _get_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings(
        max_body_bytes=_get_positive_int("MAX_BODY_BYTES", MAX_BODY_BYTES),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip() or "INFO",
        cors_allow_origin=os.environ.get("CORS_ALLOW_ORIGIN", "*").strip(),
    )


def get_settings() -> Settings:
    """Return cached settings."""
    global _settings

    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
