"""Shared test fixtures for gh-hud tests."""

import shutil
import tempfile
from pathlib import Path

import pytest

from helpers import FakeDocker, FakeGitHub, build_service_status
from hud.config import DashboardConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp()
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def fake_docker():
    return FakeDocker(statuses=[build_service_status()])


@pytest.fixture
def config(temp_dir):
    """Config for three repositories with preferences kept in the temp dir."""
    return DashboardConfig(
        repositories=["acme/api", "acme/web", "acme/infra"],
        preferences_path=temp_dir / "prefs.json",
    )
