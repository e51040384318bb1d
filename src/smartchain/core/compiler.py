"""Route compiler (source of truth).

``compile_routes(specs, registry)`` turns raw route definitions into an
immutable route table. Each path string has the grammar::

    <module> <command> [--key value ...]

Compilation rules, per route in iteration order:

1. an empty name raises ``ConfigError("invalid route name at index <i>")``;
2. missing/empty ``paths`` raise ``ConfigError("route needs at least one path")``;
3. for each path: the module is looked up case-insensitively in the registry
   (``"module <name> does not exist"``); the command token must be present
   (``"missing command at path index <i>"``) and known to the module
   (``"invalid command at path index <i>"``); remaining tokens are parsed as
   flags into the step's ``static_args``. A static value for a parameter the
   command declares must coerce to its type
   (``"invalid static argument at path index <i>: ..."``);
4. the route parameters are the union of every step's command parameters in
   first-seen order (case-insensitive), minus every key that appears in any
   step's static args: compiled-in values are never caller-settable;
5. the route is stored under its lowercased name; duplicates overwrite.

Any failure aborts the whole compilation; callers keep their previous table.
Repeated steps (same module and command) are legal. The table is a read-only
mapping, so compiling the same specs against the same registry twice yields
equal tables.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

from pydantic import ValidationError

from smartchain.config import RouteOptions, RouteSpec

from .errors import ConfigError, InvalidParameterError
from .module import Module
from .parameters import ParameterList, parse_args
from .registry import ModuleRegistry

__all__ = ["PathStep", "Route", "RouteTable", "EMPTY_TABLE", "compile_routes", "compile_path"]

RouteTable = Mapping[str, "Route"]

EMPTY_TABLE: RouteTable = MappingProxyType({})


@dataclass(frozen=True)
class PathStep:
    """One ``<module> <command>`` invocation of a route."""

    module: Module
    command: str
    static_args: Mapping[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {
            "module": self.module.name,
            "command": self.command,
            "args": dict(self.static_args),
        }


@dataclass(frozen=True)
class Route:
    """Compiled route: the unit the dispatcher executes."""

    name: str
    description: str
    options: RouteOptions
    parameters: ParameterList
    paths: Tuple[PathStep, ...]

    @property
    def broadcast(self) -> bool:
        return self.options.broadcast

    def to_json(self) -> Dict[str, Any]:
        return {
            "path": self.name,
            "description": self.description,
            "options": self.options.model_dump(),
            "parameters": self.parameters.to_json(),
        }


def compile_path(path: str, index: int, registry: ModuleRegistry) -> PathStep:
    try:
        tokens = shlex.split(path)
    except ValueError as exc:
        raise ConfigError(f"invalid path at index {index}: {exc}") from exc
    if not tokens:
        raise ConfigError(f"missing module at path index {index}")
    module = registry.get(tokens[0])
    if module is None:
        raise ConfigError(f"module {tokens[0]} does not exist")
    if len(tokens) < 2:
        raise ConfigError(f"missing command at path index {index}")
    command = tokens[1].lower()
    if not module.has(command):
        raise ConfigError(f"invalid command at path index {index}")
    try:
        static_args = parse_args(tokens[2:])
    except ValueError as exc:
        raise ConfigError(f"invalid arguments at path index {index}: {exc}") from exc
    declared = module.parameters(command)
    for key, value in static_args.items():
        param = declared.get(key)
        if param is None:
            continue
        try:
            param.coerce(value)
        except InvalidParameterError as exc:
            raise ConfigError(f"invalid static argument at path index {index}: {exc}") from exc
    return PathStep(module=module, command=command, static_args=MappingProxyType(static_args))


def _compile_route(name: str, spec: RouteSpec, registry: ModuleRegistry) -> Route:
    if not spec.paths:
        raise ConfigError("route needs at least one path", route=name)

    steps: List[PathStep] = []
    parameters = ParameterList()
    static_keys: set[str] = set()
    for index, path in enumerate(spec.paths):
        try:
            step = compile_path(path, index, registry)
        except ConfigError as exc:
            exc.route = name
            raise
        steps.append(step)
        parameters = parameters.merge(step.module.parameters(step.command))
        static_keys.update(key.lower() for key in step.static_args)

    return Route(
        name=name,
        description=spec.description,
        options=spec.options,
        parameters=parameters.without(static_keys),
        paths=tuple(steps),
    )


def _iter_specs(
    specs: Union[Mapping[str, Any], Iterable[Any]],
) -> Iterable[Tuple[str, Any]]:
    if isinstance(specs, Mapping):
        return specs.items()
    return ((_spec_name(spec), spec) for spec in specs)


def _spec_name(spec: Any) -> str:
    if isinstance(spec, RouteSpec):
        return spec.name
    if isinstance(spec, Mapping):
        return spec.get("name", "")
    return ""


def compile_routes(
    specs: Union[Mapping[str, Any], Iterable[Any]],
    registry: ModuleRegistry,
) -> RouteTable:
    """Compile route specs into a fresh read-only route table."""
    table: Dict[str, Route] = {}
    for index, (name, raw) in enumerate(_iter_specs(specs)):
        if not name or not str(name).strip():
            raise ConfigError(f"invalid route name at index {index}")
        name = str(name).strip()
        try:
            spec = raw if isinstance(raw, RouteSpec) else RouteSpec.model_validate(raw or {})
        except ValidationError as exc:
            raise ConfigError(f"invalid route '{name}': {exc}", route=name) from exc
        table[name.lower()] = _compile_route(name, spec, registry)
    return MappingProxyType(table)
