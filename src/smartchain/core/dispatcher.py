"""Route dispatcher (source of truth).

``Dispatcher.execute(route_name, args)`` runs a compiled route and always
returns a :class:`~smartchain.core.response.Response`; no exception escapes.

Flow
----
``START → FILTER → STEP[0] … STEP[n-1] → DONE``

- empty ``route_name``: the ``describe`` callback answers (default: JSON list
  of the installed routes);
- unknown route: ``Forbidden "invalid route"`` when ``debug`` is on,
  ``NoContent`` otherwise; no module is touched;
- FILTER: ``route.parameters.filter(args, strict=True)``. Undeclared keys are
  dropped here and never reach a module;
- STEP[i]: the step's static args are merged over the running arguments
  (static values win), then ``await module.execute(command, args)``:
    * ``None`` → next step, running result unchanged;
    * ``OK``/``NoContent`` → next step when the route broadcasts, otherwise
      this result is returned;
    * any other code → returned immediately, broadcast or not;
- DONE: last recorded result, or ``OK`` when no step produced one.

Errors
------
``DomainError`` (parameter errors included) → ``Forbidden`` with the error
message. Any other ``Exception`` → ``InternalServerError`` with the fixed
message ``INTERNAL_ERROR_MESSAGE``; the exception is published on
``on_error`` (or logged when nobody listens). Cancellation is not caught.

Route table
-----------
``install(table)`` replaces the table reference in one assignment. ``reload``
compiles first and installs only on success. Executions that already picked
their ``Route`` finish against it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from .channel import Channel
from .compiler import EMPTY_TABLE, Route, RouteTable, compile_routes
from .errors import DomainError
from .registry import ModuleRegistry
from .response import RESPONSE_NO_CONTENT, RESPONSE_OK, Response, ResponseCode

__all__ = ["Dispatcher", "INTERNAL_ERROR_MESSAGE", "INVALID_ROUTE_MESSAGE"]

logger = logging.getLogger("smartchain.dispatcher")

INTERNAL_ERROR_MESSAGE = "#_something_went_wrong"
INVALID_ROUTE_MESSAGE = "invalid route"


class Dispatcher:
    """Executes routes of the currently installed table."""

    def __init__(
        self,
        table: Optional[RouteTable] = None,
        *,
        debug: bool = False,
        describe: Optional[Callable[[], Response]] = None,
    ) -> None:
        self._table: RouteTable = table if table is not None else EMPTY_TABLE
        self.debug = debug
        self._describe = describe
        self.on_message = Channel("message")
        self.on_error = Channel("error")

    @property
    def routes(self) -> RouteTable:
        return self._table

    def get(self, route_name: str) -> Optional[Route]:
        return self._table.get(route_name.lower())

    def install(self, table: RouteTable) -> None:
        self._table = table
        self.on_message.emit(f"route table installed ({len(table)} routes)")

    def reload(self, specs: Mapping[str, Any], registry: ModuleRegistry) -> RouteTable:
        table = compile_routes(specs, registry)
        self.install(table)
        return table

    def clear(self) -> None:
        self.install(EMPTY_TABLE)

    def describe(self) -> Response:
        if self._describe is not None:
            return self._describe()
        return Response.json([route.to_json() for route in self._table.values()])

    def invalid_route(self, route_name: str) -> Response:
        if self.debug:
            return Response.error(ResponseCode.FORBIDDEN, INVALID_ROUTE_MESSAGE)
        return RESPONSE_NO_CONTENT

    async def execute(self, route_name: str = "", args: Optional[Mapping[str, Any]] = None) -> Response:
        if not route_name:
            return self.describe()
        route = self.get(route_name)
        if route is None:
            logger.debug("invalid route %r", route_name)
            return self.invalid_route(route_name)
        return await self.run(route, args)

    async def run(self, route: Route, args: Optional[Mapping[str, Any]] = None) -> Response:
        try:
            safe_args = route.parameters.filter(args, strict=True)
            result: Optional[Response] = None
            for step in route.paths:
                safe_args.update(step.static_args)
                step_result = await step.module.execute(step.command, dict(safe_args))
                if step_result is None:
                    continue
                result = step_result
                if not result.ok or not route.broadcast:
                    return result
            return result if result is not None else RESPONSE_OK
        except DomainError as exc:
            return Response.error(ResponseCode.FORBIDDEN, str(exc))
        except Exception as exc:
            self._report(route, exc)
            return Response.error(ResponseCode.INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    def _report(self, route: Route, exc: Exception) -> None:
        if len(self.on_error):
            self.on_error.emit(exc)
        else:
            logger.error("route %s failed", route.name, exc_info=exc)
