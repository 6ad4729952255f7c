"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from topicdrill.sync.storage import ConflictError, NotFoundError, RemoteFile  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class MemoryStorage:
    """In-memory storage backend honouring version tokens."""

    def __init__(self):
        self.files: dict[str, str] = {}
        self.versions: dict[str, str] = {}
        self.writes: list[tuple[str, str, str | None]] = []
        self._counter = 0

    def put(self, path: str, content: str) -> str:
        """Seed a file as if another writer had stored it."""
        self._counter += 1
        self.files[path] = content
        self.versions[path] = f"v{self._counter}"
        return self.versions[path]

    async def fetch_file(self, path: str) -> RemoteFile:
        if path not in self.files:
            raise NotFoundError(path)
        return RemoteFile(content=self.files[path], version_token=self.versions[path])

    async def write_file(self, path, content, expected_version_token=None):
        if self.versions.get(path) != expected_version_token:
            raise ConflictError(f"{path}: stale token {expected_version_token}")
        self.writes.append((path, content, expected_version_token))
        return self.put(path, content)

    async def close(self) -> None:
        pass


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed reference time."""
    return datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_storage():
    """Empty in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def sample_bank():
    """Provide a small question bank for testing."""
    return {
        "Analysis": {
            "Sequences": ["2019 Paper 1 Q3", "2021 Paper 2 Q4"],
            "Continuity": ["2018 Paper 1 Q9"],
            "Integration": ["2020 Paper 3 Q1", "Example sheet 2 Q5"],
        },
        "Groups": {
            "Subgroups": ["2022 Paper 1 Q2"],
            "Homomorphisms": ["2017 Paper 4 Q8", "2023 Paper 1 Q1"],
        },
    }
