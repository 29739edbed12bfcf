"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "manifestarr",
    "environment": "dev",
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
    },
    "vidfast": {
        "base_url": "https://vidfast.pro",
        "default_server": "Vfast",
        "autoplay": True,
    },
    "browser": {
        "engine": "firefox",
        "headless": True,
        "stealth": False,
        "locale": "en-US",
        "viewport_width": 1920,
        "viewport_height": 1080,
    },
    "extraction": {
        "navigation_timeout_ms": 60_000,
        "overlay_timeout_ms": 120_000,
        "trigger_timeout_ms": 30_000,
        "final_grace_ms": 10_000,
        "click_attempts": 3,
    },
    "cache": {
        "ttl_seconds": 3600,
        "max_entries": 0,
    },
    "resolve": {
        "coalesce_inflight": True,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
