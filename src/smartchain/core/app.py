"""Application shell: configuration → modules → routes → dispatcher.

Lifecycle
---------
- ``init()``: builds a registry (built-in ``app`` module plus configured
  modules), runs module ``init`` hooks, compiles the routes and installs the
  table. A second ``init`` raises ``RuntimeError``.
- ``reload(config=None)``: builds a complete new registry and table off to the
  side. Only when everything succeeded are they swapped in and the previous
  modules closed; on failure the old registry and table stay live and the
  error propagates.
- ``reload_routes(specs)``: recompiles routes against the live registry.
- ``deinit()``: clears the table and closes every module.

Channels
--------
``on_message`` (str) and ``on_error`` (exception) are shared with the
dispatcher. By default they forward to the ``smartchain.app`` logger.
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from smartchain.config import AppConfig, RouteSpec

from .builtin import AppModule
from .compiler import Route, RouteTable, compile_routes
from .dispatcher import Dispatcher
from .errors import DomainError
from .registry import ModuleRegistry
from .response import Response

__all__ = ["App"]

logger = logging.getLogger("smartchain.app")


class App:
    """Route-serving application."""

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config or AppConfig()
        self.registry = ModuleRegistry()
        self.dispatcher = Dispatcher(debug=self.config.debug, describe=self.info_response)
        self.on_message = self.dispatcher.on_message
        self.on_error = self.dispatcher.on_error
        self.on_message.subscribe(self._log_message)
        self.on_error.subscribe(self._log_error)
        self._initialized = False
        self._lock: Optional[asyncio.Lock] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self.config.name

    @property
    def version(self) -> str:
        return self.config.version

    @property
    def author(self) -> str:
        return self.config.author

    @property
    def description(self) -> str:
        return self.config.description

    @property
    def repository(self) -> str:
        return self.config.repository

    @property
    def debug(self) -> bool:
        return self.config.debug

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def routes(self) -> RouteTable:
        return self.dispatcher.routes

    @property
    def title(self) -> str:
        title = f"{self.name} v{self.version}"
        if self.author:
            title += f" by {self.author}"
        return title

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def init(self) -> None:
        async with self._get_lock():
            if self._initialized:
                raise RuntimeError(f"{type(self).__name__} is already initialized")
            self.on_message.emit("initializing")
            registry, table = await self._build(self.config)
            self.registry = registry
            self.dispatcher.debug = self.config.debug
            self.dispatcher.install(table)
            self._initialized = True
            self.on_message.emit(f"initialized (debug mode: {self.debug})")

    async def reload(self, config: Optional[AppConfig] = None) -> None:
        async with self._get_lock():
            self._require_initialized()
            new_config = config or self.config
            self.on_message.emit("reloading")
            registry, table = await self._build(new_config)
            previous = self.registry
            self.config = new_config
            self.registry = registry
            self.dispatcher.debug = new_config.debug
            self.dispatcher.install(table)
            await previous.close_all()
            self.on_message.emit("reloaded")

    def reload_routes(self, specs: Mapping[str, Any]) -> RouteTable:
        """Recompile routes against the live modules; the old table stays on failure."""
        self._require_initialized()
        table = self.dispatcher.reload(specs, self.registry)
        routes = {
            name: spec if isinstance(spec, RouteSpec) else RouteSpec.model_validate(spec or {})
            for name, spec in specs.items()
        }
        self.config = self.config.model_copy(update={"routes": routes})
        return table

    async def deinit(self) -> None:
        async with self._get_lock():
            self._require_initialized()
            self.dispatcher.clear()
            self._initialized = False
            await self.registry.close_all()
            self.on_message.emit("deinitialized")

    async def _build(self, config: AppConfig) -> Tuple[ModuleRegistry, RouteTable]:
        registry = ModuleRegistry([AppModule(self)])
        try:
            registry.load_all(config.modules)
            await registry.init_all()
            table = compile_routes(config.routes, registry)
        except Exception:
            await self._close_quietly(registry)
            raise
        self.on_message.emit(
            f"loaded {len(registry)} modules and {len(table)} routes"
        )
        return registry, table

    async def _close_quietly(self, registry: ModuleRegistry) -> None:
        try:
            await registry.close_all()
        except Exception:
            logger.exception("closing modules of a failed build raised")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(f"{type(self).__name__} is not initialized")

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    async def execute(self, route: str = "", args: Optional[Mapping[str, Any]] = None) -> Response:
        self._require_initialized()
        return await self.dispatcher.execute(route, args)

    # ------------------------------------------------------------------
    # Self description
    # ------------------------------------------------------------------
    def info_response(self) -> Response:
        return Response.text(self.to_text())

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "author": self.author,
            "description": self.description,
            "repository": self.repository,
            "routes": [route.to_json() for route in self.routes.values()],
        }

    def to_text(self) -> str:
        lines: List[str] = [self.title]
        if self.description:
            lines += ["", self.description]
        if self.repository:
            lines += ["", self.repository]
        lines += ["", "Routes:"]
        lines += [f"{route.name} - {route.description}" for route in self.routes.values()]
        return "\n".join(lines) + "\n"

    def help(self, route: str = "") -> str:
        if not route:
            return self.to_text()
        compiled = self.dispatcher.get(route)
        if compiled is None:
            raise DomainError(f"invalid route '{route}'")
        return describe_route(compiled)

    def to_html(self) -> str:
        esc = html.escape
        parts = [f"<h1>{esc(self.name)} v{esc(self.version)}</h1>"]
        if self.description:
            parts.append(f"<h2>{esc(self.description)}</h2>")
        if self.author:
            parts.append(f"<h4>by {esc(self.author)}</h4>")
        if self.repository:
            parts.append(
                f'<h3>Repository</h3><a href="{esc(self.repository)}">{esc(self.repository)}</a>'
            )
        parts.append("<h3>Routes</h3>")
        for route in self.routes.values():
            rows = "".join(
                "<tr><td><b>{name}</b></td><td>{type}</td><td>{description}</td>"
                "<td>{optional}</td><td>{default}</td></tr>".format(
                    name=esc(param["name"]),
                    type=esc(param["type"]),
                    description=esc(param["description"]),
                    optional=str(param["optional"]).lower(),
                    default=esc("" if param["default"] is None else str(param["default"])),
                )
                for param in route.parameters.to_json()
            )
            parts.append(
                f'<h4><a href="/{esc(route.name)}">/{esc(route.name)}</a></h4>'
                f"<p>{esc(route.description)}</p>"
                "<table><tr><th colspan=5>Parameters</th></tr>"
                "<tr><th>Name</th><th>Type</th><th>Description</th><th>Optional</th><th>Default</th></tr>"
                f"{rows}</table>"
            )
        return "".join(parts)

    # ------------------------------------------------------------------
    # Default channel listeners
    # ------------------------------------------------------------------
    def _log_message(self, message: str) -> None:
        logger.info("%s: %s", self.name, message)

    def _log_error(self, error: BaseException) -> None:
        logger.error("%s: %s", self.name, error, exc_info=error)


def describe_route(route: Route) -> str:
    """Human readable description of one route."""
    lines = [f"{route.name} - {route.description}" if route.description else route.name]
    if route.broadcast:
        lines.append("broadcast: every step runs until one fails")
    if len(route.parameters):
        lines += ["", "Parameters:"]
        for param in route.parameters:
            flags = [param.type]
            if param.has_default:
                flags.append(f"default={param.default!r}")
            elif param.optional:
                flags.append("optional")
            suffix = f"  {param.description}" if param.description else ""
            lines.append(f"  --{param.name} ({', '.join(flags)}){suffix}")
    return "\n".join(lines) + "\n"
