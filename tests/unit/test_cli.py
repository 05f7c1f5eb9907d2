"""Tests for the toolvault command line."""

import asyncio
import json
import sys

import pytest
from click.testing import CliRunner

from toolvault.main import _mask, cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path


def store_credential(context_store, context, tool_name, env):
    asyncio.run(context_store.set(context, tool_name, env))


class TestMask:
    """Tests for value masking."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("value1234567", "valu****4567"),
            ("123456789", "1234*6789"),
            ("12345678", "********"),
            ("", ""),
        ],
    )
    def test_mask(self, value, expected):
        assert _mask(value) == expected


class TestCredentialsList:
    """Tests for 'credentials list'."""

    def test_empty(self, runner):
        result = runner.invoke(cli, ["credentials", "list"])

        assert result.exit_code == 0
        assert "No credentials stored" in result.output

    def test_current_context_only(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"API_KEY": "secret-value"})
        store_credential(context_store, "work", "work-tool", {"TOKEN": "x"})

        result = runner.invoke(cli, ["credentials", "list"])

        assert result.exit_code == 0
        assert "my-tool" in result.output
        assert "work-tool" not in result.output
        assert "API_KEY" not in result.output
        assert "secret-value" not in result.output

    def test_show_env_vars(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"B": "2", "API_KEY": "secret-value"})

        result = runner.invoke(cli, ["credentials", "list", "--show-env-vars"])

        assert result.exit_code == 0
        assert "ENVIRONMENT VARIABLES" in result.output
        assert "API_KEY, B" in result.output
        assert "secret-value" not in result.output

    def test_all_contexts(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"X": "1"})
        store_credential(context_store, "work", "work-tool", {"X": "1"})

        result = runner.invoke(cli, ["credentials", "list", "--all-contexts"])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].split() == ["CONTEXT", "TOOL"]
        assert lines[1].split() == ["default", "my-tool"]
        assert lines[2].split() == ["work", "work-tool"]

    def test_context_option(self, runner, context_store):
        store_credential(context_store, "work", "work-tool", {"X": "1"})

        result = runner.invoke(cli, ["--credential-context", "work", "credentials", "list"])

        assert result.exit_code == 0
        assert "work-tool" in result.output

    def test_corrupt_store(self, runner, credentials_file):
        credentials_file.parent.mkdir(parents=True)
        credentials_file.write_text("{broken")

        result = runner.invoke(cli, ["credentials", "list"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestCredentialsDelete:
    """Tests for 'credentials delete'."""

    def test_delete(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"X": "1"})

        result = runner.invoke(cli, ["credentials", "delete", "my-tool"])

        assert result.exit_code == 0
        assert "Credential deleted successfully" in result.output
        assert asyncio.run(context_store.get("default", "my-tool")) is None

    def test_delete_missing(self, runner):
        result = runner.invoke(cli, ["credentials", "delete", "missing-tool"])

        assert result.exit_code == 1
        assert "No credential stored" in result.output

    def test_delete_in_other_context(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"X": "1"})

        result = runner.invoke(cli, ["--credential-context", "work", "credentials", "delete", "my-tool"])

        assert result.exit_code == 1
        assert asyncio.run(context_store.get("default", "my-tool")) == {"X": "1"}


class TestCredentialsBackends:
    """Tests for 'credentials backends'."""

    def test_lists_backends(self, runner, monkeypatch, tmp_path):
        monkeypatch.setenv("PATH", str(tmp_path))

        result = runner.invoke(cli, ["credentials", "backends"])

        assert result.exit_code == 0
        assert "file: Available" in result.output
        assert "osxkeychain: Not available" in result.output


class TestResolve:
    """Tests for the 'resolve' command."""

    def test_override_is_masked(self, runner):
        result = runner.invoke(
            cli, ["--credential-override", "my-tool:X=value1234567", "resolve", "my-tool"]
        )

        assert result.exit_code == 0
        assert "X=valu****4567" in result.output
        assert "value1234567" not in result.output

    def test_show_values(self, runner):
        result = runner.invoke(
            cli,
            ["--credential-override", "my-tool:X=value1234567", "resolve", "my-tool", "--show-values"],
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == {"env": {"X": "value1234567"}}

    def test_override_from_environment(self, runner, monkeypatch):
        monkeypatch.setenv("TOOLVAULT_CREDENTIAL_OVERRIDE", "my-tool:TOKEN->SOURCE_TOKEN")
        monkeypatch.setenv("SOURCE_TOKEN", "abc")

        result = runner.invoke(cli, ["resolve", "my-tool", "--show-values"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"env": {"TOKEN": "abc"}}

    def test_malformed_override(self, runner):
        result = runner.invoke(cli, ["--credential-override", "no-colon", "resolve", "my-tool"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_override_variable(self, runner, monkeypatch):
        monkeypatch.delenv("UNSET_FOR_TEST", raising=False)

        result = runner.invoke(
            cli, ["--credential-override", "my-tool:UNSET_FOR_TEST", "resolve", "my-tool"]
        )

        assert result.exit_code == 1
        assert "UNSET_FOR_TEST" in result.output

    def test_provider_result_is_persisted(self, runner, config_dir, context_store):
        code = "import json; print(json.dumps({'env': {'X': '1'}}))"
        (config_dir / "config.json").write_text(
            json.dumps({"providers": {"my-tool-provider": [sys.executable, "-c", code]}})
        )

        result = runner.invoke(
            cli, ["resolve", "my-tool", "--provider", "my-tool-provider", "--show-values"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"env": {"X": "1"}}
        assert asyncio.run(context_store.get("default", "my-tool")) == {"X": "1"}

    def test_local_tool_is_not_persisted(self, runner, config_dir, context_store):
        code = "import json; print(json.dumps({'env': {'X': '1'}}))"
        (config_dir / "config.json").write_text(
            json.dumps({"providers": {"my-tool-provider": [sys.executable, "-c", code]}})
        )

        result = runner.invoke(cli, ["resolve", "my-tool", "--provider", "my-tool-provider", "--local"])

        assert result.exit_code == 0, result.output
        assert asyncio.run(context_store.list_all()) == []

    def test_provider_failure(self, runner, config_dir):
        code = "import sys; sys.exit(2)"
        (config_dir / "config.json").write_text(
            json.dumps({"providers": {"broken": [sys.executable, "-c", code]}})
        )

        result = runner.invoke(cli, ["resolve", "my-tool", "--provider", "broken"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_unparsable_provider_command(self, runner):
        result = runner.invoke(cli, ["resolve", "my-tool", "--provider", "it's"])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Error:" in result.output

    def test_stored_credential_is_used(self, runner, context_store):
        store_credential(context_store, "default", "my-tool", {"X": "stored"})

        result = runner.invoke(cli, ["resolve", "my-tool", "--show-values"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"env": {"X": "stored"}}


class TestGlobalOptions:
    """Tests for options on the root group."""

    def test_blank_context_rejected(self, runner):
        result = runner.invoke(cli, ["--credential-context", "  ", "credentials", "list"])

        assert result.exit_code == 1
        assert "must not be empty" in result.output

    def test_invalid_config_file(self, runner, config_dir):
        (config_dir / "config.json").write_text("[]")

        result = runner.invoke(cli, ["credentials", "list"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_explicit_config_path(self, runner, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text('{"credsStore": "vault"}')

        result = runner.invoke(cli, ["--config", str(path), "credentials", "list"])

        assert result.exit_code == 1
        assert "Unknown credsStore" in result.output
