"""Tests for configuration loading."""

import json

import pytest

from smartchain import ConfigError, load_config
from smartchain.config import AppConfig, ModuleConfig


def test_defaults_without_file():
    config = load_config()
    assert config == AppConfig()
    assert config.server.port == 4431
    assert config.routes == {}


def test_loads_json(tmp_path):
    path = tmp_path / "app.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo",
                "debug": True,
                "modules": [{"class": "sample_modules:Session"}],
                "routes": {"login": {"paths": ["session login"], "options": {"broadcast": True}}},
                "server": {"port": 9000, "allowed_origins": ["http://x"]},
            }
        )
    )
    config = load_config(path)
    assert config.name == "demo"
    assert config.debug is True
    assert config.modules == [ModuleConfig(class_path="sample_modules:Session")]
    assert config.routes["login"].options.broadcast is True
    assert config.server.port == 9000


def test_loads_yaml_and_applies_overrides(tmp_path):
    path = tmp_path / "app.yaml"
    path.write_text(
        "name: demo\n"
        "debug: false\n"
        "routes:\n"
        "  ping:\n"
        "    description: answers pong\n"
        "    paths:\n"
        "      - app ping\n"
    )
    config = load_config(str(path), {"debug": True, "name": None})
    assert config.debug is True
    assert config.name == "demo"
    assert config.routes["ping"].paths == ["app ping"]


def test_empty_yaml_is_default(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_config(path) == AppConfig()


@pytest.mark.parametrize(
    "filename, content, message",
    [
        ("bad.json", "{not json", "cannot parse"),
        ("bad.yaml", "a: [1, 2", "cannot parse"),
        ("list.json", "[1, 2]", "must contain a mapping"),
        ("invalid.json", '{"server": {"port": "high"}}', "invalid configuration"),
        ("extra.json", '{"modules": [{"class": "a:B", "bogus": 1}]}', "invalid configuration"),
    ],
)
def test_invalid_files_raise_config_error(tmp_path, filename, content, message):
    path = tmp_path / filename
    path.write_text(content)
    with pytest.raises(ConfigError, match=message):
        load_config(path)


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_config(tmp_path / "absent.json")
