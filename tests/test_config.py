import os

import pytest

from drivehandoff.app.config import Settings
from drivehandoff.utils.errors import ConfigurationError


def test_defaults_resolve_against_cwd(monkeypatch, tmp_path):
    for name in ("DH_TOKEN_PATH", "DH_CREDENTIALS_PATH", "DH_LOOKUP_ATTEMPTS", "DH_REVOKE_ON_FAILURE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    settings = Settings.from_env(dotenv=False)

    assert settings.token_path == os.path.join(str(tmp_path), "token.json")
    assert settings.credentials_path == os.path.join(str(tmp_path), "credentials.json")
    assert settings.lookup_attempts == 1
    assert settings.revoke_on_failure is False


def test_environment_overrides(monkeypatch, mock_env_vars):
    monkeypatch.setenv("DH_LOOKUP_ATTEMPTS", "4")
    monkeypatch.setenv("DH_LOOKUP_BACKOFF", "0.5")
    monkeypatch.setenv("DH_REVOKE_ON_FAILURE", "yes")
    monkeypatch.setenv("DH_LOG_FORMAT", "JSON")

    settings = Settings.from_env(dotenv=False)

    assert settings.token_path == mock_env_vars["DH_TOKEN_PATH"]
    assert settings.log_format == "json"
    options = settings.transfer_options()
    assert options.lookup_attempts == 4
    assert options.lookup_backoff == 0.5
    assert options.revoke_on_failure is True
    assert options.supports_all_drives is True


@pytest.mark.parametrize("name,value", [
    ("DH_LOOKUP_ATTEMPTS", "three"),
    ("DH_LOOKUP_ATTEMPTS", "0"),
    ("DH_LOOKUP_BACKOFF", "fast"),
    ("DH_REVOKE_ON_FAILURE", "maybe"),
    ("DH_LOG_FORMAT", "xml"),
])
def test_invalid_values(monkeypatch, mock_env_vars, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        Settings.from_env(dotenv=False)
