"""Tests for the click command line interface."""

import pytest
from click.testing import CliRunner

from traffic_controller import cli as cli_module
from traffic_controller.cli import cli
from traffic_controller.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_module, "configure_logging", lambda *args, **kwargs: ())


@pytest.fixture
def captured(monkeypatch):
    seen = []

    async def fake_run(settings) -> None:
        seen.append(settings)

    monkeypatch.setattr(cli_module, "_run", fake_run)
    return seen


class TestRunCommand:
    def test_options_become_settings(self, captured) -> None:
        result = CliRunner().invoke(
            cli,
            [
                "run",
                "--cluster-name",
                "foolanito",
                "--binding-domain",
                "domain.tld",
                "--annotation-filter",
                "foo=bar",
                "--initial-weight",
                "30",
                "--dev-mode",
                "--debug-scope",
                "controller",
                "--metrics-addr",
                "127.0.0.1:9102",
            ],
        )

        assert result.exit_code == 0, result.output
        (settings,) = captured
        assert settings.cluster_name == "foolanito"
        assert settings.binding_domain == "domain.tld"
        assert settings.parsed_annotation_filter().key == "foo"
        assert settings.initial_weight == 30
        assert settings.dev_mode
        assert settings.debug_scopes == ("controller",)
        assert settings.backend_type == "fake"
        assert settings.metrics_addr == "127.0.0.1:9102"

    def test_environment_variables(self, captured) -> None:
        result = CliRunner().invoke(
            cli,
            ["run"],
            env={
                "TRAFFIC_CONTROLLER_CLUSTER_NAME": "from-env",
                "TRAFFIC_CONTROLLER_BACKEND_TYPE": "dynamoDB",
                "TRAFFIC_CONTROLLER_AWS_HEALTH_CHECK_ID": "hc-1",
            },
        )

        assert result.exit_code == 0, result.output
        (settings,) = captured
        assert settings.cluster_name == "from-env"
        assert settings.backend_type == "dynamoDB"
        assert settings.health_check_id == "hc-1"

    def test_invalid_settings_exit_with_error(self, captured) -> None:
        result = CliRunner().invoke(cli, ["run"], env={})
        assert result.exit_code == 1
        assert captured == []

    def test_invalid_metrics_address_exits_with_error(self, captured) -> None:
        result = CliRunner().invoke(
            cli, ["run", "--cluster-name", "a", "--metrics-addr", "nowhere"]
        )
        assert result.exit_code == 1
        assert captured == []

    def test_kubeconfig_failure_exits_with_error(self, monkeypatch) -> None:
        def no_config() -> None:
            raise ConfigurationError("unable to load kubernetes configuration")

        monkeypatch.setattr(cli_module, "load_kube_config", no_config)

        result = CliRunner().invoke(cli, ["run", "--cluster-name", "a"])

        assert result.exit_code == 1

    def test_unknown_backend_rejected(self, captured) -> None:
        result = CliRunner().invoke(
            cli, ["run", "--cluster-name", "a", "--backend-type", "etcd"]
        )
        assert result.exit_code != 0
        assert captured == []


class TestShowWeightCommand:
    def test_fake_backend_has_no_shared_state(self) -> None:
        result = CliRunner().invoke(
            cli, ["show-weight", "--cluster-name", "foolanito", "--backend-type", "fake"]
        )
        assert result.exit_code == 0, result.output
