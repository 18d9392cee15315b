"""Test configuration and fixtures for dockside framework tests."""

import os
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from dockside.core.config import reset_config
from dockside.core.types import HarnessConfig, ReadinessConfig


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp(prefix="dockside_test_"))
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def harness_config():
    """Configuration with short readiness intervals."""
    return HarnessConfig(
        readiness=ReadinessConfig(
            base_interval=0.01, multiplier=2.0, max_interval=0.05, max_attempts=5
        )
    )


@pytest.fixture
def isolated_environment(temp_dir):
    """No DOCKSIDE_ variables, no config file, no cached configuration."""
    clean_env = {k: v for k, v in os.environ.items() if not k.startswith("DOCKSIDE_")}
    with patch.dict("os.environ", clean_env, clear=True):
        cwd = Path.cwd()
        os.chdir(temp_dir)
        reset_config()
        try:
            yield temp_dir
        finally:
            os.chdir(cwd)
            reset_config()
