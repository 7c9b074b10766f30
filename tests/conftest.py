"""
Pytest configuration and fixtures for pantry tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from pantry.config import Settings, clear_settings_cache
from pantry.filestore import MemoryFileStore
from pantry.pantry import Pantry
from support import ManualClock


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manually advanced clock."""
    return ManualClock()


@pytest.fixture
def primary_root(temp_dir: Path) -> Path:
    return temp_dir / "data"


@pytest.fixture
def legacy_root(temp_dir: Path) -> Path:
    return temp_dir / "cache"


@pytest.fixture
def pantry(primary_root: Path, legacy_root: Path, clock: ManualClock) -> Pantry:
    """Provide a disk-backed store handle on temp directories."""
    return Pantry(primary_root, legacy_root, namespace="pantry", clock=clock)


@pytest.fixture
def memory_store() -> MemoryFileStore:
    return MemoryFileStore()


@pytest.fixture
def memory_pantry(memory_store: MemoryFileStore, clock: ManualClock) -> Pantry:
    """Provide a store handle backed by an in-memory file store."""
    return Pantry(
        "/primary",
        "/legacy",
        namespace="pantry",
        file_store=memory_store,
        clock=clock,
    )


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing.

    Points both storage roots at the temp directory.
    """
    env_vars = {
        "PANTRY_DATA_DIR": str(temp_dir / "data"),
        "PANTRY_LEGACY_DIR": str(temp_dir / "cache"),
        "PANTRY_NAMESPACE": "test-pantry",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        os.environ.pop("PANTRY_DEFAULT_TTL", None)
        os.environ.pop("LOG_FILE", None)
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from pantry.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
