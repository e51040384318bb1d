"""Core runtime aggregator.

Exposes the building blocks of the engine from a single module. Importing it
performs only imports; it registers no plugins and builds no application.

- ``base_router`` / ``router``: command tables (plugin-free and plugin-enabled)
- ``decorators``: ``route`` and ``command`` markers
- ``module`` / ``registry``: executable modules and their owner
- ``compiler`` / ``dispatcher``: route tables and their execution
- ``app``: the application shell tying configuration to the above
"""

from .base_router import BaseRouter
from .decorators import command, route
from .errors import (
    ConfigError,
    DomainError,
    InvalidParameterError,
    MissingParameterError,
    ParameterError,
    SmartChainError,
)
from .parameters import Parameter, ParameterList, parse_args
from .response import Response, ResponseCode, ResponseType
from .router import Router
from .module import Module
from .registry import ModuleRegistry
from .compiler import PathStep, Route, compile_routes
from .dispatcher import Dispatcher
from .app import App

__all__ = [
    "App",
    "BaseRouter",
    "ConfigError",
    "Dispatcher",
    "DomainError",
    "InvalidParameterError",
    "MissingParameterError",
    "Module",
    "ModuleRegistry",
    "Parameter",
    "ParameterError",
    "ParameterList",
    "PathStep",
    "Response",
    "ResponseCode",
    "ResponseType",
    "Route",
    "Router",
    "SmartChainError",
    "command",
    "compile_routes",
    "parse_args",
    "route",
]
