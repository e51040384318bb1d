"""Tests for route compilation."""

import pytest

from smartchain import ConfigError
from smartchain.config import RouteSpec
from smartchain.core.compiler import compile_path, compile_routes
from smartchain.core.registry import ModuleRegistry

from sample_modules import Accounts, Session


@pytest.fixture
def registry():
    return ModuleRegistry([Accounts(name="accounts"), Session()])


SIGNUP = {
    "signup": {
        "description": "creates an account and logs in",
        "paths": ["accounts validate", "accounts create --role admin", "session login"],
    }
}


def test_compiles_steps_and_aggregates_parameters(registry):
    table = compile_routes(SIGNUP, registry)
    route = table["signup"]
    assert route.description == "creates an account and logs in"
    assert [(step.module.name, step.command) for step in route.paths] == [
        ("accounts", "validate"),
        ("accounts", "create"),
        ("session", "login"),
    ]
    assert route.paths[1].static_args == {"role": "admin"}
    # static args are never caller-settable
    assert route.parameters.names() == ["user", "remember"]
    assert route.parameters.get("user").description == "login name"
    assert route.broadcast is False


def test_route_and_module_names_are_case_insensitive(registry):
    table = compile_routes({"SignUp": {"paths": ["ACCOUNTS Create"]}}, registry)
    assert list(table) == ["signup"]
    assert table["signup"].name == "SignUp"
    assert table["signup"].paths[0].command == "create"


def test_compilation_is_idempotent(registry):
    assert compile_routes(SIGNUP, registry) == compile_routes(SIGNUP, registry)


def test_table_and_static_args_are_read_only(registry):
    table = compile_routes(SIGNUP, registry)
    with pytest.raises(TypeError):
        table["other"] = table["signup"]  # type: ignore[index]
    with pytest.raises(TypeError):
        table["signup"].paths[1].static_args["role"] = "guest"  # type: ignore[index]


def test_accepts_list_of_specs_and_options(registry):
    specs = [
        RouteSpec(name="ping", paths=["session login"]),
        {"name": "all", "options": {"broadcast": True}, "paths": ["session login"]},
    ]
    table = compile_routes(specs, registry)
    assert set(table) == {"ping", "all"}
    assert table["all"].broadcast


def test_repeated_steps_are_allowed(registry):
    table = compile_routes({"twice": {"paths": ["session login", "session login"]}}, registry)
    assert len(table["twice"].paths) == 2
    assert table["twice"].parameters.names() == ["user", "remember"]


@pytest.mark.parametrize(
    "specs, message",
    [
        ({"": {"paths": ["session login"]}}, "invalid route name at index 0"),
        ([{"paths": ["session login"]}], "invalid route name at index 0"),
        ({"empty": {"paths": []}}, "route needs at least one path"),
        ({"empty": {}}, "route needs at least one path"),
        ({"ghost": {"paths": ["ghost login"]}}, "module ghost does not exist"),
        ({"short": {"paths": ["session login", "session"]}}, "missing command at path index 1"),
        ({"bad": {"paths": ["session logout"]}}, "invalid command at path index 0"),
        ({"blank": {"paths": ["  "]}}, "missing module at path index 0"),
        ({"stray": {"paths": ["session login oops"]}}, "invalid arguments at path index 0"),
        (
            {"flag": {"paths": ["session login", "accounts create --role"]}},
            "invalid static argument at path index 1: invalid parameter 'role'",
        ),
        ({"typed": {"paths": "session login", "options": {"broadcast": "maybe"}}}, "invalid route 'typed'"),
    ],
)
def test_invalid_specs_raise_config_error(registry, specs, message):
    with pytest.raises(ConfigError) as exc:
        compile_routes(specs, registry)
    assert message in str(exc.value)


def test_config_error_names_the_route(registry):
    with pytest.raises(ConfigError) as exc:
        compile_routes({"ghosted": {"paths": ["ghost login"]}}, registry)
    assert exc.value.route == "ghosted"


def test_any_failure_aborts_the_whole_table(registry):
    specs = {"ok": {"paths": ["session login"]}, "bad": {"paths": ["ghost x"]}}
    with pytest.raises(ConfigError):
        compile_routes(specs, registry)


def test_compile_path_parses_quoted_static_args(registry):
    step = compile_path("accounts create --role 'super user'", 0, registry)
    assert step.static_args == {"role": "super user"}
    assert step.to_json() == {"module": "accounts", "command": "create", "args": {"role": "super user"}}


def test_static_args_are_checked_against_the_step_command(registry):
    table = compile_routes(
        {"remembered": {"paths": ["session login --remember yes --source cli"]}}, registry
    )
    assert table["remembered"].paths[0].static_args == {"remember": "yes", "source": "cli"}
    with pytest.raises(ConfigError, match="invalid static argument"):
        compile_routes({"bad": {"paths": ["session login --remember perhaps"]}}, registry)
