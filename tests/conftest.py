"""
Pytest configuration and shared fixtures for iacenv tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from iacenv.config.settings import Config
from iacenv.core.display import NullDisplayer

# variables that would leak the developer's setup into tests
_ISOLATED_PREFIXES = ("TENV_", "TOFUENV_", "TFENV_", "TG_", "TM_", "ATMOS_", "GITHUB_")


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def isolated_env(tmp_path, monkeypatch) -> Path:
    """
    Environment without any iacenv, tool or GitHub variable, and with HOME
    pointing to an empty directory.

    Returns:
        The fake home directory
    """
    for name in list(os.environ):
        if name.startswith(_ISOLATED_PREFIXES):
            monkeypatch.delenv(name, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def config(tmp_path, isolated_env) -> Config:
    """Configuration rooted in a temporary directory, amd64, auto install on."""
    work = tmp_path / "work"
    work.mkdir()
    return Config.from_env(
        {"TENV_ROOT": str(tmp_path / "root"), "TENV_ARCH": "amd64"},
        work_path=work,
    )


@pytest.fixture
def null_displayer() -> NullDisplayer:
    return NullDisplayer()
