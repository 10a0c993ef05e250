"""Pytest configuration and fixtures."""

import io

import pytest
from rich.console import Console

SAMPLE_PACKAGE_JSON = """{
  "name": "test-project",
  "version": "1.0.0",
  "dependencies": {
    "express": "^4.18.0",
    "lodash": "~4.17.21"
  },
  "devDependencies": {
    "jest": "^29.0.0"
  },
  "scripts": {
    "test": "jest"
  }
}
"""


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return SAMPLE_PACKAGE_JSON


@pytest.fixture
def manifest_file(tmp_path):
    """Create a temporary package.json for testing."""
    manifest = tmp_path / "package.json"
    manifest.write_text(SAMPLE_PACKAGE_JSON)
    return manifest


@pytest.fixture
def output():
    """Console that records what a run prints."""
    buffer = io.StringIO()
    console = Console(file=buffer, soft_wrap=True, highlight=False, width=200)
    return console, buffer
