"""Pytest configuration and fixtures."""
import os
import sys
from types import SimpleNamespace

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Keep a developer's .env out of the test run
os.environ["DH_LOG_LEVEL"] = "ERROR"
os.environ.pop("DH_TOKEN_ENCRYPTION_KEY", None)


@pytest.fixture
def session():
    """Authenticated session stand-in; only the bearer token is used."""
    return SimpleNamespace(token="ya29.test-token", valid=True)


@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Point every DH_* path at a temporary directory."""
    test_vars = {
        "DH_TOKEN_PATH": str(tmp_path / "token.json"),
        "DH_CREDENTIALS_PATH": str(tmp_path / "credentials.json"),
        "DH_LOG_LEVEL": "ERROR",
        "DH_LOG_FORMAT": "console",
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    return test_vars
