"""Pytest configuration and fixtures."""

import json

import pytest

from durable_update.manifest import dump_manifest
from durable_update.models import AvailableVersions, CommandResult


class FakeRunner:
    """Command runner that records commands instead of executing them.

    ``handler(command, cwd)`` returns the exit code, or raises to simulate a
    command that cannot be started.
    """

    def __init__(self, cwd, handler=None):
        self.cwd = cwd
        self.commands: list[str] = []
        self.handler = handler or (lambda command, cwd: 0)

    async def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        return CommandResult(command=command, exit_code=self.handler(command, self.cwd))


class FakeGateway:
    """Metadata gateway answering from a fixed per-category table."""

    def __init__(self, updates: dict[str, dict[str, AvailableVersions]] | None = None, error=None):
        self.updates = updates or {}
        self.error = error
        self.calls = []

    async def fetch_updates(self, manifest, flags):
        self.calls.append(flags)
        if self.error:
            raise self.error
        if flags.is_dev:
            category = "dev"
        elif flags.is_optional:
            category = "optional"
        else:
            category = "standard"
        return dict(self.updates.get(category, {}))


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return """
{
  "name": "test-project",
  "dependencies": {
    "express": "^4.18.0",
    "lodash": "~4.17.21"
  }
}
"""


@pytest.fixture
def temp_manifest_file(tmp_path, sample_package_json):
    """Create a temporary manifest file for testing."""
    manifest = tmp_path / "package.json"
    manifest.write_text(sample_package_json)
    return manifest


@pytest.fixture
def sample_manifest():
    """Sample package.json content with durable updates enabled."""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "dependencies": {
            "express": "^4.17.0",
            "lodash": "~4.17.0",
        },
        "devDependencies": {
            "mocha": "^9.0.0",
        },
        "durable-update": {
            "upgradeType": "all",
            "onFailure": "skip",
        },
    }


@pytest.fixture
def manifest_file(tmp_path, sample_manifest):
    """Write the sample manifest to a temporary project directory."""
    path = tmp_path / "package.json"
    path.write_text(dump_manifest(sample_manifest))
    return path


@pytest.fixture
def make_runner(tmp_path):
    """Factory for fake runners rooted in the temporary project directory."""

    def _make(handler=None):
        return FakeRunner(tmp_path, handler)

    return _make


@pytest.fixture
def make_gateway():
    """Factory for fake metadata gateways."""
    return FakeGateway


@pytest.fixture
def failing_when_installed():
    """Build a runner handler whose tests fail while a given version is in the manifest."""

    def _handler(package: str, version: str):
        def handler(command, cwd):
            if command != "npm test":
                return 0
            manifest = json.loads((cwd / "package.json").read_text())
            sections = [manifest.get(key, {}) for key in ("dependencies", "devDependencies", "optionalDependencies")]
            return 1 if any(section.get(package) == version for section in sections) else 0

        return handler

    return _handler
