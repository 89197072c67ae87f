"""
Environment-driven settings.

Each setting is a small function so tests can change the environment with
`monkeypatch.setenv` and see the new value on the next call.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def db_pool_min_size() -> int:
    return max(1, _env_int("DB_POOL_MIN_SIZE", 1))


def db_pool_max_size() -> int:
    return max(db_pool_min_size(), _env_int("DB_POOL_MAX_SIZE", 5))


def upload_dir() -> Path:
    return Path(_env_str("UPLOAD_DIR", "./uploads"))


def max_upload_bytes() -> int:
    """
    Read MAX_UPLOAD_BYTES from env, falling back to 10 MiB.
    """
    raw = os.environ.get("MAX_UPLOAD_BYTES", "").strip()
    if not raw:
        return DEFAULT_MAX_UPLOAD_BYTES

    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError("Invalid MAX_UPLOAD_BYTES. It must be an integer.")

    if value <= 0:
        raise RuntimeError("Invalid MAX_UPLOAD_BYTES. It must be > 0.")

    return value


def public_base_url() -> str:
    # Empty keeps canonical and sitemap URLs site-relative.
    return os.environ.get("PUBLIC_BASE_URL", "").strip().rstrip("/")


def cors_allow_origin() -> str:
    return _env_str("CORS_ALLOW_ORIGIN", "*")


def log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()
