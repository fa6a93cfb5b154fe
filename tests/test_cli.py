"""Tests for the drivehandoff command line."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from drivehandoff import main
from drivehandoff.app.models.contracts import PermissionRecord, TransferPreview
from drivehandoff.utils.errors import ConfigurationError, PermissionLookupError

SESSION = SimpleNamespace(token="ya29.test-token")


@pytest.fixture
def runner(mock_env_vars):
    return CliRunner()


def test_transfer_success(runner):
    promoted = PermissionRecord(id="P9", emailAddress="bob@example.com", role="owner")
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock, return_value=promoted) as transfer:
        result = runner.invoke(main.cli, ["transfer", "F1", "bob@example.com"])

    assert result.exit_code == 0, result.output
    assert "transferred to bob@example.com" in result.output
    args, kwargs = transfer.call_args
    assert args == (SESSION, "F1", "bob@example.com")
    assert kwargs["options"].lookup_attempts == 1
    assert kwargs["options"].revoke_on_failure is False


def test_transfer_options_from_flags(runner):
    promoted = PermissionRecord(id="P9", role="owner")
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock, return_value=promoted) as transfer:
        result = runner.invoke(main.cli, ["transfer", "F1", "bob@example.com", "--lookup-attempts", "3", "--revoke-on-failure"])

    assert result.exit_code == 0, result.output
    options = transfer.call_args.kwargs["options"]
    assert options.lookup_attempts == 3
    assert options.revoke_on_failure is True


def test_transfer_arguments_from_environment(runner, monkeypatch):
    monkeypatch.setenv("DH_FILE_ID", "F2")
    monkeypatch.setenv("DH_NEW_OWNER", "carol@example.com")
    promoted = PermissionRecord(id="P3", role="owner")
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock, return_value=promoted) as transfer:
        result = runner.invoke(main.cli, ["transfer"])

    assert result.exit_code == 0, result.output
    assert transfer.call_args.args[1:] == ("F2", "carol@example.com")


def test_transfer_failure_exits_nonzero(runner):
    error = PermissionLookupError("User bob@example.com does not have access to file F1", file_id="F1", recipient_email="bob@example.com")
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock, side_effect=error):
        result = runner.invoke(main.cli, ["transfer", "F1", "bob@example.com"])

    assert result.exit_code == 1


def test_transfer_missing_arguments(runner, monkeypatch):
    monkeypatch.delenv("DH_FILE_ID", raising=False)
    monkeypatch.delenv("DH_NEW_OWNER", raising=False)

    result = runner.invoke(main.cli, ["transfer"])

    assert result.exit_code == 2


def test_dry_run_does_not_transfer(runner):
    preview = TransferPreview(
        file_id="F1",
        recipient_email="bob@example.com",
        current_owners=["alice@x.com"],
        steps=["grant", "lookup", "promote"],
    )
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "preview_transfer", new_callable=AsyncMock, return_value=preview), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock) as transfer:
        result = runner.invoke(main.cli, ["transfer", "F1", "bob@example.com", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "alice@x.com" in result.output
    assert "3. promote" in result.output
    transfer.assert_not_called()


def test_metrics_file_written(runner, tmp_path):
    metrics_file = tmp_path / "drivehandoff.prom"
    promoted = PermissionRecord(id="P9", role="owner")
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "transfer_ownership", new_callable=AsyncMock, return_value=promoted):
        result = runner.invoke(main.cli, ["transfer", "F1", "bob@example.com", "--metrics-file", str(metrics_file)])

    assert result.exit_code == 0, result.output
    assert "# HELP drivehandoff_" in metrics_file.read_text()


def test_auth_command(runner):
    with patch.object(main, "authorize", return_value=SESSION) as authorize:
        result = runner.invoke(main.cli, ["auth"])

    assert result.exit_code == 0, result.output
    authorize.assert_called_once()


def test_auth_command_missing_secrets(runner):
    with patch.object(main, "authorize", side_effect=ConfigurationError("OAuth client secrets not found")):
        result = runner.invoke(main.cli, ["auth"])

    assert result.exit_code == 1


def test_bad_configuration_exits_nonzero(runner, monkeypatch):
    monkeypatch.setenv("DH_LOOKUP_ATTEMPTS", "lots")

    result = runner.invoke(main.cli, ["auth"])

    assert result.exit_code == 1


def test_permissions_command(runner):
    records = [
        PermissionRecord(id="P1", type="user", emailAddress="alice@x.com", role="owner"),
        PermissionRecord(id="P9", type="user", emailAddress="bob@example.com", role="writer", pendingOwner=True),
    ]
    provider = SimpleNamespace(list_permissions=AsyncMock(return_value=records))
    with patch.object(main, "authorize", return_value=SESSION), \
            patch.object(main, "get_provider", return_value=provider):
        result = runner.invoke(main.cli, ["permissions", "F1"])

    assert result.exit_code == 0, result.output
    assert "alice@x.com" in result.output
    assert "(pending owner)" in result.output
    provider.list_permissions.assert_awaited_once_with("F1", "ya29.test-token")
