# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path: Path) -> Generator[None, None, None]:
    """Keep results, logs and the default DB out of the repo tree."""
    with patch.object(Settings, "RESULTS_DIR", tmp_path / "results"), \
            patch.object(Settings, "DATA_DIR", tmp_path / "data"), \
            patch.object(Settings, "LOGS_DIR", tmp_path / "logs"), \
            patch.object(Settings, "DB_PATH", tmp_path / "data" / "test.db"), \
            patch.object(Settings, "SEARCH_API_KEY", ""):
        yield
