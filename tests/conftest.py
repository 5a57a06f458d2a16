"""Pytest fixtures for autodidact tests."""

import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_dir(temp_dir):
    """A small project tree the modification ledger can back up and patch."""
    root = temp_dir / "project"
    pkg = root / "agent"
    pkg.mkdir(parents=True)
    (pkg / "__init__.py").write_text('"""Agent package."""\n\nVERSION = "1.0"\n')
    (pkg / "fetch.py").write_text(
        "import time\n"
        "\n"
        "TIMEOUT = 30\n"
        "\n"
        "\n"
        "def fetch(url, timeout=30):\n"
        "    time.sleep(0)\n"
        "    return url\n"
    )
    return root
