"""The ``app`` module every application registers on its own."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .decorators import command
from .module import Module

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .app import App


class AppModule(Module):
    """Application level commands."""

    def __init__(self, app: "App", name: str = "app"):
        self.app = app
        super().__init__(name=name)

    @command(description="Returns pong.")
    def ping(self):
        return "pong"

    @command(
        description="Describes the application or a specific route.",
        parameters={"route": "route to describe; empty describes every route"},
    )
    def help(self, route: str = ""):
        return self.app.help(route)
