"""Centralized helpers for resolving the application's data directory."""
from __future__ import annotations

import logging
import os
from pathlib import Path

LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent
DEFAULT_DATA_ROOT = APP_ROOT / "data"
DATA_ROOT_ENV = "DASHBOARD_DATA_ROOT"


def resolve_data_root() -> Path:
    """Return the configured data root without touching the filesystem."""
    override = os.environ.get(DATA_ROOT_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return DEFAULT_DATA_ROOT


def ensure_data_root() -> Path:
    """Return the canonical data root, creating it as needed."""
    data_root = resolve_data_root()
    if not data_root.exists():
        LOGGER.info("Creating data directory %s", data_root)
    data_root.mkdir(parents=True, exist_ok=True)
    return data_root
