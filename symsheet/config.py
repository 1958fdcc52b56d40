"""
SymSheet — settings and logging setup.

Settings are read from a JSON file whose path comes from the
``SYMSHEET_CONFIG`` environment variable, falling back to
``<project>/data/settings.json``.  Missing keys fall back to
``DEFAULT_SETTINGS``.
"""

import json
import logging
import os
from typing import Optional

_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data")
_CONFIG_FILE = os.path.join(_DATA_DIR, "settings.json")

ENV_VAR = "SYMSHEET_CONFIG"

# ── Default settings ────────────────────────────────────────────────────
DEFAULT_SETTINGS = {
    "max_propagation_passes": 50,   # fixed-point cap per triggering event
    "tolerance": 1e-9,              # relative tolerance for truth checks
    "default_statements": 2,        # empty statements in a new worksheet
    "log_level": "WARNING",
}

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _config_path() -> str:
    return os.environ.get(ENV_VAR) or _CONFIG_FILE


def _load_file() -> dict:
    path = _config_path()
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            return {}
        if isinstance(data, dict):
            return data
    return {}


def get_settings() -> dict:
    """Return the effective settings (file values merged over defaults)."""
    merged = dict(DEFAULT_SETTINGS)
    merged.update({k: v for k, v in _load_file().items() if k in DEFAULT_SETTINGS})
    return merged


def save_settings(settings: dict) -> None:
    """Persist *settings* to the config file, dropping unknown keys."""
    path = _config_path()
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    known = {k: v for k, v in settings.items() if k in DEFAULT_SETTINGS}
    with open(path, "w", encoding="utf-8") as f:
        json.dump(known, f, indent=2, ensure_ascii=False)


def configure_logging(level: Optional[str] = None) -> None:
    """Install a root handler at *level* (default: the configured level)."""
    if level is None:
        level = get_settings()["log_level"]
    logging.basicConfig(level=str(level).upper(), format=_LOG_FORMAT, force=True)
