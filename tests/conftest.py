"""Pytest configuration and fixtures."""

import json

import pytest

from lockdiff.registry import RegistryError


class FakeRegistryClient:
    """Registry double answering from a ``{(name, spec): answer}`` mapping.

    An answer that is an exception instance is raised instead of returned.
    """

    def __init__(self, answers: dict):
        self.answers = answers
        self.calls: list[tuple[str, str]] = []

    async def fetch_versions(self, package_name: str, spec: str):
        self.calls.append((package_name, spec))
        answer = self.answers.get((package_name, spec))
        if answer is None:
            raise RegistryError(f"Package {package_name} not found")
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def fake_registry():
    """Factory for in-memory registry clients."""
    return FakeRegistryClient


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "express": "^4.18.0",
            "lodash": "~4.17.21",
        },
        "devDependencies": {
            "jest": "^29.0.0",
        },
        "peerDependencies": {
            "react": ">=17",
        },
    }


@pytest.fixture
def sample_package_lock():
    """npm 7+ package-lock.json content matching sample_package_json."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "lockfileVersion": 3,
        "packages": {
            "": {"name": "test-project", "version": "1.0.0"},
            "node_modules/express": {"version": "4.18.2"},
            "node_modules/lodash": {"version": "4.17.21"},
            "node_modules/jest": {"version": "29.7.0", "dev": True},
        },
    }


@pytest.fixture
def legacy_package_lock():
    """npm 6 package-lock.json content matching sample_package_json."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "lockfileVersion": 1,
        "dependencies": {
            "express": {"version": "4.18.2"},
            "lodash": {"version": "4.17.21"},
            "jest": {"version": "29.7.0", "dev": True},
        },
    }


@pytest.fixture
def write_project(tmp_path):
    """Write package.json and/or package-lock.json into a temp directory."""

    def _write(package_json=None, package_lock=None):
        if package_json is not None:
            (tmp_path / "package.json").write_text(json.dumps(package_json))
        if package_lock is not None:
            content = package_lock if isinstance(package_lock, str) else json.dumps(package_lock)
            (tmp_path / "package-lock.json").write_text(content)
        return tmp_path

    return _write
