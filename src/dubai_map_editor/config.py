from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return float(str(raw).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class EditorSettings:
    """Central settings for the map editor and its API service.

    Values come from `DME_*` env vars; invalid numbers fall back to defaults.
    """

    api_url: str
    http_timeout: float
    http_retries: int
    history_cap: int
    temp_prefix: str
    cache_enabled: bool
    cache_ttl: float
    db_path: str

    @classmethod
    def from_env(cls) -> "EditorSettings":
        return cls(
            api_url=os.getenv("DME_API_URL", "http://localhost:3000").rstrip("/"),
            http_timeout=_env_float("DME_HTTP_TIMEOUT", 10.0),
            http_retries=max(0, _env_int("DME_HTTP_RETRIES", 2)),
            history_cap=max(1, _env_int("DME_HISTORY_CAP", 50)),
            temp_prefix=os.getenv("DME_TEMP_PREFIX") or "temp-",
            cache_enabled=_env_bool("DME_CACHE", True),
            cache_ttl=_env_float("DME_CACHE_TTL", 120.0),
            db_path=os.getenv("DME_DB_PATH") or "./dubai.sqlite",
        )


@lru_cache(maxsize=1)
def get_settings() -> EditorSettings:
    return EditorSettings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
