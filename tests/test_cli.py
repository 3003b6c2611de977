import json
import logging

import pytest
from click.testing import CliRunner

from aciplugin.__main__ import cli
from aciplugin.cli.show import MASK, mask_secrets
from aciplugin.cli.utils import configure_logging, get_env_flag


@pytest.fixture
def runner():
    return CliRunner()


def test_help(runner):
    result = runner.invoke(cli, [])

    assert result.exit_code == 0
    assert "validate" in result.output
    assert "show" in result.output


class TestValidate:
    def test_valid_config(self, runner, write_config, minimal_config):
        result = runner.invoke(cli, ["validate", "--config", str(write_config(minimal_config))])

        assert result.exit_code == 0, result.output
        assert "Configuration is valid" in result.output
        assert "Plugin ID: GRF" in result.output
        assert "Defaults applied (12)" in result.output
        assert "LoadBalancerConf.LBHost = 'aciplugin-events'" in result.output

    def test_config_from_environment(self, runner, monkeypatch, write_config, full_config):
        monkeypatch.setenv("PLUGIN_CONFIG_FILE_PATH", str(write_config(full_config)))

        result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 0, result.output
        assert "Plugin ID: ACI" in result.output
        assert "Defaults applied" not in result.output

    def test_json_output(self, runner, write_config, minimal_config):
        path = write_config(minimal_config)

        result = runner.invoke(cli, ["validate", "--config", str(path), "--json-output"])

        assert result.exit_code == 0, result.output
        output = json.loads(result.stdout)
        assert output["status"] == "ok"
        summary = output["result"]
        assert summary["root_service_uuid"] == minimal_config["RootServiceUUID"]
        assert summary["tls"]["min_version"] == "TLSv1_2"
        assert summary["tls"]["verify_peer"] is True
        assert {"domain": "DBConf", "field": "PoolSize", "value": 10} in summary[
            "defaults_applied"
        ]

    def test_invalid_config(self, runner, write_config, minimal_config):
        minimal_config["MessageBusConf"]["MessageBusType"] = "RabbitMQ"

        result = runner.invoke(cli, ["validate", "--config", str(write_config(minimal_config))])

        assert result.exit_code == 1
        assert "Error [invalid_value]:" in result.output
        assert "RabbitMQ" in result.output

    def test_invalid_config_json_output(self, runner, write_config, minimal_config):
        minimal_config["EventConf"]["ListenerHost"] = ""
        path = write_config(minimal_config)

        result = runner.invoke(cli, ["validate", "--config", str(path), "--json-output"])

        assert result.exit_code == 1
        output = json.loads(result.stdout)
        assert output == {
            "status": "error",
            "kind": "missing_field",
            "error": "no value set for ListenerHost",
            "field": "EventConf.ListenerHost",
        }

    def test_missing_config_path(self, runner):
        result = runner.invoke(cli, ["validate", "--json-output"])

        assert result.exit_code == 1
        output = json.loads(result.stdout)
        assert output["kind"] == "file_read"
        assert "PLUGIN_CONFIG_FILE_PATH" in output["error"]

    def test_debug_includes_traceback(self, runner, tmp_path):
        path = tmp_path / "missing.json"

        result = runner.invoke(
            cli, ["validate", "--config", str(path), "--json-output", "--debug"]
        )

        assert result.exit_code == 1
        # Debug logging shares the stream in this mode, so only the error type is checked
        assert "FileReadError" in result.output
        assert '"traceback"' in result.output


class TestShow:
    def test_masks_secrets(self, runner, write_config, minimal_config):
        result = runner.invoke(cli, ["show", "--config", str(write_config(minimal_config))])

        assert result.exit_code == 0, result.output
        shown = json.loads(result.stdout)
        assert shown["PluginConf"]["Password"] == MASK
        assert shown["ODIMConf"]["Password"] == MASK
        assert shown["APICConf"]["Password"] == MASK
        assert shown["DBConf"]["RedisOnDiskEncryptedPassword"] == MASK
        assert shown["PluginConf"]["UserName"] == "admin"

    def test_shows_applied_defaults(self, runner, write_config, minimal_config):
        result = runner.invoke(cli, ["show", "--config", str(write_config(minimal_config))])

        shown = json.loads(result.stdout)
        assert shown["FirmwareVersion"] == "1.0"
        assert shown["PluginConf"]["ID"] == "GRF"
        assert shown["MessageBusConf"]["MessageBusQueue"] == ["REDFISH-EVENTS-TOPIC"]
        assert shown["TLSConf"]["MinVersion"] == "TLS_1.2"
        assert shown["LoadBalancerConf"] == {"LBHost": "aciplugin-events", "LBPort": "45021"}

    def test_key_material_is_not_shown(self, runner, write_config, minimal_config):
        result = runner.invoke(cli, ["show", "--config", str(write_config(minimal_config))])

        assert "PRIVATE KEY" not in result.output
        assert "redis-on-disk-secret" not in result.output
        assert "RSAPrivateKeyPath" in json.loads(result.stdout)["KeyCertConf"]

    def test_invalid_config(self, runner, write_config, minimal_config):
        del minimal_config["RootServiceUUID"]

        result = runner.invoke(cli, ["show", "--config", str(write_config(minimal_config))])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["field"] == "RootServiceUUID"


def test_mask_secrets_leaves_empty_values():
    masked = mask_secrets({"A": {"Password": ""}, "B": [{"Password": "x", "Host": "h"}]})

    assert masked == {"A": {"Password": ""}, "B": [{"Password": MASK, "Host": "h"}]}


@pytest.mark.parametrize(
    "value,expected",
    [("1", True), ("true", True), ("YES", True), ("0", False), ("off", False), ("", False)],
)
def test_get_env_flag(monkeypatch, value, expected):
    monkeypatch.setenv("PLUGIN_DEBUG", value)

    assert get_env_flag("PLUGIN_DEBUG") is expected


def test_debug_environment_variable(monkeypatch):
    monkeypatch.setenv("PLUGIN_DEBUG", "1")

    configure_logging(log_level="WARNING")

    assert logging.getLogger().level == logging.DEBUG


def test_log_file(tmp_path):
    log_file = tmp_path / "logs" / "plugin.log"

    configure_logging(log_file=log_file, log_level="INFO")
    logging.getLogger("aciplugin.test").info("written to file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "written to file" in log_file.read_text()
