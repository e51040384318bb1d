"""Executable modules: the units routes are composed of.

A module is an independently initialized object exposing a case-insensitive
command table and an ``execute`` entry point::

    class Greeter(Module):
        plugins = ("pydantic",)

        @command(parameters={"who": "name to greet"})
        async def hello(self, who: str = "world"):
            \"\"\"Says hello.\"\"\"
            return f"hello {who}"

Commands may be plain or ``async`` methods. ``execute`` filters the incoming
arguments through the command's own parameter list, so a step only ever sees
the arguments its command declares, and normalizes the return value into a
:class:`~smartchain.core.response.Response` (``None`` meaning "not
applicable").
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .decorators import COMMANDS_ROUTER
from .errors import DomainError
from .parameters import ParameterList
from .response import Response, coerce_result
from .router import Router

__all__ = ["Module"]


class Module:
    """Base class for units exposing commands."""

    #: plugins plugged on the command router of every instance
    plugins: Tuple[str, ...] = ()
    #: description shown in self-descriptions (defaults to the class docstring)
    description: str = ""

    def __init__(self, name: Optional[str] = None, **options: Any):
        self.name = name or type(self).__name__.lower()
        self.options: Dict[str, Any] = dict(options)
        self.commands = Router(self, name=COMMANDS_ROUTER)
        for plugin in self.plugins:
            self.commands.plug(plugin)
        if not self.description:
            doc = (type(self).__doc__ or "").strip()
            self.description = doc.splitlines()[0] if doc else ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------
    async def init(self) -> None:
        """Called once after loading, before any route is compiled."""

    async def close(self) -> None:
        """Called when the owning application is deinitialized or reloaded."""

    # ------------------------------------------------------------------
    # Command table
    # ------------------------------------------------------------------
    def has(self, command: str) -> bool:
        return self.commands.has(command)

    def command_names(self) -> List[str]:
        return list(self.commands.entries())

    def parameters(self, command: str) -> ParameterList:
        return self.commands.entry(command).parameters

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "commands": self.commands.describe(),
        }

    async def execute(self, command: str, args: Optional[Mapping[str, Any]] = None) -> Optional[Response]:
        if not self.has(command):
            raise DomainError(f"invalid command '{command}' for module '{self.name}'")
        kwargs = self.parameters(command).filter(args)
        return coerce_result(await self.commands.call(command, **kwargs))
