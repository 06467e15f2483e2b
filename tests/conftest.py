# tests/conftest.py

"""Shared pytest fixtures for the dealwatch test suite."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from dealwatch.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the default database at a per-test temp file."""
    db_path = tmp_path / "dealwatch.db"
    with patch.object(Settings, "DB_PATH", db_path):
        yield db_path
