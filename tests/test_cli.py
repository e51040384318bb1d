"""Tests for the command line."""

import json

import pytest
from typer.testing import CliRunner

from smartchain.cli import cli_app

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "name: demo\n"
        "modules:\n"
        "  - class: sample_modules:Accounts\n"
        "    name: accounts\n"
        "routes:\n"
        "  ping:\n"
        "    description: answers pong\n"
        "    paths: [app ping]\n"
        "  signup:\n"
        "    paths: ['accounts create --role admin']\n"
    )
    return path


def test_exec_runs_route(config_file):
    result = runner.invoke(cli_app, ["--config", str(config_file), "exec", "ping"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "pong"


def test_exec_passes_free_form_arguments(config_file):
    result = runner.invoke(
        cli_app, ["--config", str(config_file), "exec", "signup", "--user", "ann", "--role", "guest"]
    )
    assert result.exit_code == 0
    assert result.stdout.strip() == "acct:ann:admin"


def test_exec_fails_on_error_responses(config_file):
    result = runner.invoke(cli_app, ["--config", str(config_file), "exec", "signup"])
    assert result.exit_code == 1
    assert "missing parameter 'user'" in result.stdout


def test_exec_unknown_route_in_debug(config_file):
    quiet = runner.invoke(cli_app, ["--config", str(config_file), "exec", "nope"])
    assert quiet.exit_code == 0
    loud = runner.invoke(cli_app, ["--config", str(config_file), "--debug", "exec", "nope"])
    assert loud.exit_code == 1
    assert "invalid route" in loud.stdout


def test_exec_rejects_stray_arguments(config_file):
    result = runner.invoke(cli_app, ["--config", str(config_file), "exec", "ping", "stray"])
    assert result.exit_code == 2


def test_routes_text_and_json(config_file):
    text = runner.invoke(cli_app, ["--config", str(config_file), "routes"])
    assert text.exit_code == 0
    assert "ping - answers pong" in text.stdout

    as_json = runner.invoke(cli_app, ["--config", str(config_file), "routes", "--json"])
    assert as_json.exit_code == 0
    data = json.loads(as_json.stdout)
    assert [route["path"] for route in data["routes"]] == ["ping", "signup"]


def test_config_prints_effective_configuration(config_file):
    result = runner.invoke(cli_app, ["--config", str(config_file), "--debug", "config"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["debug"] is True
    assert data["modules"][0]["class"] == "sample_modules:Accounts"


def test_bad_configuration_exits_with_usage_code(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    result = runner.invoke(cli_app, ["--config", str(path), "config"])
    assert result.exit_code == 2


def test_invalid_route_configuration_is_reported(tmp_path):
    path = tmp_path / "ghost.yaml"
    path.write_text("routes:\n  bad:\n    paths: [ghost x]\n")
    result = runner.invoke(cli_app, ["--config", str(path), "exec", "bad"])
    assert result.exit_code == 2
