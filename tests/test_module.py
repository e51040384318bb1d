"""Tests for modules and the module registry."""

import asyncio

import pytest

from smartchain import (
    ConfigError,
    DomainError,
    MissingParameterError,
    Module,
    Response,
    ResponseCode,
    command,
)
from smartchain.config import ModuleConfig
from smartchain.core.registry import ModuleRegistry, import_class
from smartchain.core.response import ResponseType

from sample_modules import Accounts, Broken, Session


class Greeter(Module):
    """Greets people.

    Second paragraph.
    """

    def __init__(self, name=None):
        super().__init__(name=name)
        self.seen = []

    @command(parameters={"who": "name to greet"})
    async def hello(self, who: str = "world"):
        self.seen.append(who)
        return f"hello {who}"

    @command()
    def info(self):
        return {"greeter": True}

    @command()
    def skip(self):
        return None

    @command()
    def flag(self, on: bool):
        return on

    @command()
    def blob(self):
        return b"\x00\x01"


def test_module_defaults_name_and_description():
    module = Greeter()
    assert module.name == "greeter"
    assert module.description == "Greets people."
    assert Greeter(name="Hi").name == "Hi"
    assert module.command_names() == ["hello", "info", "skip", "flag", "blob"]


def test_module_to_json_lists_commands():
    data = Greeter().to_json()
    assert data["name"] == "greeter"
    hello = data["commands"][0]
    assert hello["name"] == "hello"
    assert hello["parameters"][0]["description"] == "name to greet"


def test_execute_normalizes_results():
    module = Greeter()
    text = asyncio.run(module.execute("hello", {"who": "ann"}))
    assert text == Response.text("hello ann")
    data = asyncio.run(module.execute("INFO"))
    assert data.type == ResponseType.JSON
    assert data.data == '{"greeter": true}'
    assert asyncio.run(module.execute("skip")) is None
    assert asyncio.run(module.execute("flag", {"on": "false"})).code == ResponseCode.NO_CONTENT
    assert asyncio.run(module.execute("flag", {"on": True})).code == ResponseCode.OK
    assert asyncio.run(module.execute("blob")).type == ResponseType.BINARY


def test_execute_passes_only_declared_arguments():
    module = Greeter()
    asyncio.run(module.execute("hello", {"who": "bob", "admin": True}))
    asyncio.run(module.execute("hello", {}))
    assert module.seen == ["bob", "world"]


def test_execute_filters_strictly():
    with pytest.raises(MissingParameterError) as exc:
        asyncio.run(Greeter().execute("flag", {"other": True}))
    assert exc.value.name == "on"


def test_execute_unknown_command_is_domain_error():
    with pytest.raises(DomainError):
        asyncio.run(Greeter().execute("nope", {}))


def test_import_class_forms():
    assert import_class("sample_modules:Accounts") is Accounts
    assert import_class("sample_modules.Session") is Session
    with pytest.raises(ConfigError):
        import_class("Accounts")
    with pytest.raises(ConfigError):
        import_class("no_such_package.mod:Thing")
    with pytest.raises(ConfigError):
        import_class("sample_modules:Missing")


def test_registry_is_case_insensitive_and_rejects_duplicates():
    registry = ModuleRegistry([Greeter()])
    assert "GREETER" in registry
    assert registry["Greeter"].name == "greeter"
    assert registry.get("other") is None
    with pytest.raises(KeyError):
        registry["other"]
    with pytest.raises(ConfigError, match="already registered"):
        registry.add(Greeter(name="GREETER"))
    registry.add(Greeter(name="GREETER"), replace=True)
    assert len(registry) == 1
    with pytest.raises(ConfigError):
        registry.add(object())  # type: ignore[arg-type]


def test_registry_loads_from_config():
    registry = ModuleRegistry()
    module = registry.load(
        ModuleConfig.model_validate(
            {"class": "sample_modules:Accounts", "name": "users", "options": {"prefix": "u"}}
        )
    )
    assert registry.names() == ["users"]
    assert module.prefix == "u"
    assert registry.describe()[0]["name"] == "users"


def test_registry_load_errors_are_config_errors():
    registry = ModuleRegistry()
    with pytest.raises(ConfigError, match="is not a module"):
        registry.load(ModuleConfig(class_path="sample_modules:NotAModule"))
    with pytest.raises(ConfigError, match="invalid options"):
        registry.load(ModuleConfig(class_path="sample_modules:NotAModule", options={"x": 1}))


def test_registry_lifecycle_hooks():
    accounts = Accounts()
    registry = ModuleRegistry([accounts, Session()])
    asyncio.run(registry.init_all())
    assert accounts.initialized
    asyncio.run(registry.close_all())
    assert accounts.closed


def test_registry_init_failure_propagates():
    registry = ModuleRegistry([Broken()])
    with pytest.raises(RuntimeError, match="cannot connect"):
        asyncio.run(registry.init_all())
