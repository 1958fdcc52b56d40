import sys
from pathlib import Path

# Ensure the project root is on sys.path so `symsheet` and `backend` are importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from symsheet import config
from symsheet.store import SymbolStore


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path) -> Path:
    """Point the settings file at a temp location for every test."""
    config_file = tmp_path / "settings.json"
    monkeypatch.setenv(config.ENV_VAR, str(config_file))
    return config_file


@pytest.fixture
def store() -> SymbolStore:
    return SymbolStore()
